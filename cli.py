#!/usr/bin/env python3
"""
CLI du chargeur de données de test openEHR.

Usage:
    python cli.py init-db
    python cli.py load --ehr 10 --composition-per-ehr 50 --workers 4
    python cli.py stats
"""
import click
import sys
from pathlib import Path

# Ajouter le répertoire parent au path
sys.path.insert(0, str(Path(__file__).parent))

from sqlalchemy import func
from sqlmodel import Session, select

from loader.config import LoaderSettings
from loader.db import create_loader_engine, init_db
from loader.models import Composition, Ehr, Entry, EventContext, Participation, Status
from loader.models_audit import AuditDetails, Contribution
from loader.models_reference import PartyIdentified, TemplateStore, Territory
from loader.services.ehr_populator import EhrPopulator
from loader.services.fixtures import EHR_STATUS_FIXTURE, load_compositions, load_json_resource
from loader.services.reference_data import bootstrap_context
from loader.utils.error_handling import LoaderError
from loader.utils.structured_logging import configure_logging, metrics

STATS_TABLES = [
    ("EHR", Ehr),
    ("EHR_STATUS", Status),
    ("Compositions", Composition),
    ("Entrées", Entry),
    ("Contextes", EventContext),
    ("Participations", Participation),
    ("Contributions", Contribution),
    ("Audits", AuditDetails),
    ("Parties", PartyIdentified),
    ("Templates", TemplateStore),
    ("Territoires", Territory),
]


@click.group()
def cli():
    """Chargeur de données de test openEHR - Outils en ligne de commande."""
    pass


@cli.command('init-db')
@click.option('--database-url', help='URL SQLAlchemy de la base cible')
def init_db_command(database_url: str):
    """Crée le schéma et pré-remplit les territoires."""
    settings = LoaderSettings.from_env(database_url=database_url)
    engine = create_loader_engine(settings.database_url)
    init_db(engine)
    click.echo(f"✅ Base initialisée: {settings.database_url}")


@cli.command()
@click.option('--ehr', type=int, help="Nombre d'EHR à générer")
@click.option('--composition-per-ehr', type=int, help='Nombre de compositions par EHR')
@click.option('--workers', type=int, help='Taille du pool de workers')
@click.option('--database-url', help='URL SQLAlchemy de la base cible')
@click.option('--zone-id', help='Fuseau horaire des horodatages sans zone')
@click.option('--log-level', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR']), help='Niveau de log')
@click.option('--json-logs', is_flag=True, help='Logs au format JSON')
def load(ehr, composition_per_ehr, workers, database_url, zone_id, log_level, json_logs):
    """Génère des EHR et leurs compositions."""
    try:
        settings = LoaderSettings.from_env(
            ehr=ehr,
            composition_per_ehr=composition_per_ehr,
            workers=workers,
            database_url=database_url,
            zone_id=zone_id,
            log_level=log_level,
            log_json=json_logs or None,
        )
    except ValueError as e:
        click.echo(f"❌ Configuration invalide: {e}", err=True)
        sys.exit(1)

    configure_logging(level=settings.log_level, json_format=settings.log_json)

    try:
        compositions = load_compositions()
        ehr_status_details = load_json_resource(EHR_STATUS_FIXTURE)

        engine = create_loader_engine(settings.database_url)
        init_db(engine)

        with Session(engine) as session:
            context = bootstrap_context(session, settings.zone_id)

        click.echo(
            f"📥 Chargement de {settings.ehr} EHR × {settings.composition_per_ehr} compositions "
            f"({settings.database_url})"
        )
        populator = EhrPopulator(
            engine,
            context,
            compositions,
            ehr_status_details=ehr_status_details,
            max_workers=settings.workers,
        )
        result = populator.populate(settings.ehr, settings.composition_per_ehr)
    except LoaderError as e:
        click.echo(f"❌ {e.message}", err=True)
        sys.exit(1)

    click.echo(
        f"\n✅ {len(result.ehr_ids)} EHR et {result.composition_count} compositions "
        f"créés en {result.elapsed_seconds:.2f}s"
    )
    _show_metrics()


def _show_metrics():
    """Affiche les métriques d'opérations."""
    all_metrics = metrics.get_metrics()

    if not all_metrics:
        click.echo("📊 Aucune métrique disponible")
        return

    click.echo("📊 Métriques d'opérations:\n")

    for operation, data in all_metrics.items():
        click.echo(f"🔹 {operation}:")
        click.echo(f"  Exécutions: {data['count']}")
        click.echo(f"  Succès: {data['success_count']} ({data.get('success_rate', 0)*100:.1f}%)")
        click.echo(f"  Erreurs: {data['error_count']}")
        click.echo(f"  Durée moyenne: {data.get('avg_duration', 0):.3f}s")
        click.echo(f"  Durée min/max: {data['min_duration']:.3f}s / {data['max_duration']:.3f}s")
        click.echo()


@cli.command()
@click.option('--database-url', help='URL SQLAlchemy de la base cible')
def stats(database_url: str):
    """Affiche le nombre de lignes par table."""
    settings = LoaderSettings.from_env(database_url=database_url)
    engine = create_loader_engine(settings.database_url)
    init_db(engine)

    click.echo(f"📊 Statistiques pour {settings.database_url}\n")

    with Session(engine) as session:
        for label, model in STATS_TABLES:
            count = session.exec(select(func.count()).select_from(model)).one()
            click.echo(f"  {label}: {count}")


if __name__ == '__main__':
    cli()
