"""Gestion centralisée des erreurs du chargeur de données de test."""
from typing import Optional, Dict, Any


class LoaderError(Exception):
    """Classe de base pour les erreurs du chargeur."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class FixtureLoadError(LoaderError):
    """Fixture absente ou illisible (template, composition, EHR_STATUS)."""

    def __init__(self, location: str, reason: str):
        super().__init__(
            f"Impossible de charger la fixture '{location}': {reason}",
            {"location": location},
        )


class ValidationError(LoaderError):
    """Erreur de validation d'un document avant insertion."""


class MissingTemplateIdError(ValidationError):
    """La composition ne déclare pas de template_id."""

    def __init__(self, archetype_node_id: Optional[str] = None):
        super().__init__(
            "Template Id must not be null",
            {"archetype_node_id": archetype_node_id},
        )


class UnsupportedPartyError(ValidationError):
    """Variante de PARTY_PROXY non prise en charge."""

    def __init__(self, party_type: str):
        super().__init__(
            f"Unsupported PartyProxy implementation: {party_type}",
            {"party_type": party_type},
        )


class InvalidTermMappingError(ValidationError):
    """TERM_MAPPING sans purpose: impossible de l'aplatir."""

    def __init__(self, index: int):
        super().__init__(
            f"Term mapping #{index} has no purpose",
            {"index": index},
        )


class NotFoundError(LoaderError):
    """Ressource de référence non trouvée."""

    def __init__(self, resource_type: str, resource_id: Any):
        message = f"{resource_type} {resource_id} not found"
        super().__init__(message, {"resource_type": resource_type, "resource_id": resource_id})


class TerritoryNotFoundError(NotFoundError):
    """Code territoire absent de la table de référence."""

    def __init__(self, code: str):
        super().__init__("Territory", code)
