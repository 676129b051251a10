"""
Accès base de données

Contenu
- Création du moteur SQLModel à partir d'une URL (SQLite fichier par défaut).
- `init_db()` : création idempotente du schéma + table territoire pré-remplie.

Notes
- Sous SQLite, chaque worker obtient sa propre connexion (pas de StaticPool):
  les transactions concurrentes sont sérialisées par le verrou fichier,
  `timeout` fixe l'attente maximale.
- Les clés étrangères SQLite sont activées à chaque connexion.
"""

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, Session, create_engine

# Import ALL models to ensure tables are registered
from loader import models, models_audit, models_reference  # noqa: F401


def create_loader_engine(database_url: str, echo: bool = False, **options) -> Engine:
    """
    Crée le moteur; options spécifiques SQLite (multi-thread, attente du verrou).

    `options` est transmis à `create_engine` (ex. `poolclass=StaticPool`
    pour une base en mémoire partagée dans les tests).
    """
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": 30},
            **options,
        )
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    pool_options = {"pool_size": 20, "max_overflow": 30, "pool_timeout": 60, "pool_pre_ping": True}
    pool_options.update(options)
    return create_engine(database_url, echo=echo, **pool_options)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def init_db(engine: Engine) -> None:
    """Crée les tables si elles n'existent pas et pré-remplit les territoires (idempotent)."""
    from loader.services.territory_seed import seed_territories

    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        seed_territories(session)

