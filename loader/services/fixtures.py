"""Chargement des fixtures embarquées (templates OPT, compositions, EHR_STATUS).

Toute fixture absente ou invalide lève `FixtureLoadError`: l'erreur est
fatale et survient avant la moindre insertion.
"""
import json
from pathlib import Path
from typing import Any, Dict, List, Sequence

from pydantic import ValidationError as PydanticValidationError

from loader.converters.rm_types import Composition
from loader.utils.error_handling import FixtureLoadError

RESOURCES_DIR = Path(__file__).resolve().parent.parent / "resources"

# template_id -> emplacement du fichier OPT
TEMPLATE_FIXTURES: Dict[str, str] = {
    "Corona_Anamnese": "templates/corona_anamnese.opt",
    "ehrbase_blood_pressure_simple.de.v0": "templates/ehrbase_blood_pressure.opt",
    "International Patient Summary": "templates/international_patient_summary.opt",
    "Virologischer Befund": "templates/virologischer_befund.opt",
}

COMPOSITION_FIXTURES: List[str] = [
    "compositions/blood_pressure.json",
    "compositions/international_patient_summary.json",
    "compositions/corona_anamnese.json",
    "compositions/virologischer_befund.json",
]

EHR_STATUS_FIXTURE = "ehr_status/ehr_status.json"


def read_resource(location: str, base_dir: Path = RESOURCES_DIR) -> str:
    path = base_dir / location
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise FixtureLoadError(location, str(e)) from e


def load_json_resource(location: str, base_dir: Path = RESOURCES_DIR) -> Dict[str, Any]:
    content = read_resource(location, base_dir)
    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        raise FixtureLoadError(location, f"JSON invalide ({e})") from e


def load_composition(location: str, base_dir: Path = RESOURCES_DIR) -> Composition:
    """Charge et valide une composition au format JSON canonique."""
    content = read_resource(location, base_dir)
    try:
        return Composition.model_validate_json(content)
    except PydanticValidationError as e:
        raise FixtureLoadError(location, f"composition invalide ({e.error_count()} erreurs)") from e


def load_compositions(
    locations: Sequence[str] = COMPOSITION_FIXTURES,
    base_dir: Path = RESOURCES_DIR,
) -> List[Composition]:
    return [load_composition(location, base_dir) for location in locations]
