"""Pré-remplissage de la table `territory` (codes ISO 3166).

La table n'est écrite qu'ici, avant tout chargement; les workers ne font
ensuite que des lectures.
"""
from typing import List, Tuple

from sqlmodel import Session, select

from loader.models_reference import Territory

# (code numérique, alpha-2, alpha-3, libellé)
TERRITORIES: List[Tuple[int, str, str, str]] = [
    (36, "AU", "AUS", "Australia"),
    (40, "AT", "AUT", "Austria"),
    (56, "BE", "BEL", "Belgium"),
    (124, "CA", "CAN", "Canada"),
    (156, "CN", "CHN", "China"),
    (203, "CZ", "CZE", "Czechia"),
    (208, "DK", "DNK", "Denmark"),
    (246, "FI", "FIN", "Finland"),
    (250, "FR", "FRA", "France"),
    (276, "DE", "DEU", "Germany"),
    (300, "GR", "GRC", "Greece"),
    (348, "HU", "HUN", "Hungary"),
    (356, "IN", "IND", "India"),
    (372, "IE", "IRL", "Ireland"),
    (380, "IT", "ITA", "Italy"),
    (392, "JP", "JPN", "Japan"),
    (442, "LU", "LUX", "Luxembourg"),
    (528, "NL", "NLD", "Netherlands"),
    (554, "NZ", "NZL", "New Zealand"),
    (578, "NO", "NOR", "Norway"),
    (616, "PL", "POL", "Poland"),
    (620, "PT", "PRT", "Portugal"),
    (724, "ES", "ESP", "Spain"),
    (752, "SE", "SWE", "Sweden"),
    (756, "CH", "CHE", "Switzerland"),
    (826, "GB", "GBR", "United Kingdom"),
    (840, "US", "USA", "United States of America"),
]


def seed_territories(session: Session) -> int:
    """Insère les territoires manquants; retourne le nombre de lignes créées."""
    existing = set(session.exec(select(Territory.code)).all())
    created = 0
    for code, twoletter, threeletter, text in TERRITORIES:
        if code in existing:
            continue
        session.add(Territory(code=code, twoletter=twoletter, threeletter=threeletter, text=text))
        created += 1
    session.commit()
    return created
