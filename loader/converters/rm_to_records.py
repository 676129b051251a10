"""
Conversion des valeurs du modèle de référence vers leurs sous-enregistrements
relationnels.

- `build_coded_text()` : DV_TEXT / DV_CODED_TEXT → `DvCodedTextRecord` (JSON)
- `build_code_phrase()` : CODE_PHRASE → `CodePhraseRecord`
- `build_term_mapping_strings()` : TERM_MAPPING → chaînes `a|b|c|...`
- `build_party()` : PARTY_PROXY → ligne `partyidentified`
"""
import uuid
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel
from sqlmodel import Session

from loader.converters.rm_types import (
    AnyText,
    CodePhrase,
    DvCodedText,
    PartyIdentified as RMPartyIdentified,
    PartyProxy,
    TermMapping,
)
from loader.models_reference import PartyIdentified, PartyRefIdType, PartyType
from loader.utils.error_handling import InvalidTermMappingError, UnsupportedPartyError


class CodePhraseRecord(BaseModel):
    terminology_id: str
    code_string: str


class DvCodedTextRecord(BaseModel):
    """Représentation stockée d'un DV_TEXT ou DV_CODED_TEXT."""

    value: Optional[str] = None
    formatting: Optional[str] = None
    language: Optional[CodePhraseRecord] = None
    encoding: Optional[CodePhraseRecord] = None
    defining_code: Optional[CodePhraseRecord] = None
    term_mapping: List[str] = []

    def to_column(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


def as_column(record: Optional[DvCodedTextRecord]) -> Optional[Dict[str, Any]]:
    """Valeur de colonne JSON (None conservé)."""
    return record.to_column() if record is not None else None


def build_code_phrase(code_phrase: Optional[CodePhrase]) -> Optional[CodePhraseRecord]:
    if code_phrase is None:
        return None
    return CodePhraseRecord(
        terminology_id=code_phrase.terminology_id.value,
        code_string=code_phrase.code_string,
    )


def build_term_mapping_strings(mappings: Optional[Sequence[TermMapping]]) -> List[str]:
    """
    Aplatit les TERM_MAPPING en chaînes délimitées par `|`.

    Ordre des champs: match, valeur du purpose, terminologie et code du
    purpose, terminologie et code de la cible.

    Raises:
        InvalidTermMappingError: si un mapping n'a pas de purpose
    """
    if not mappings:
        return []

    result = []
    for index, mapping in enumerate(mappings):
        purpose = mapping.purpose
        if purpose is None:
            raise InvalidTermMappingError(index)

        fields = [
            mapping.match,
            purpose.value,
            purpose.defining_code.terminology_id.value,
            purpose.defining_code.code_string,
            mapping.target.terminology_id.value,
            mapping.target.code_string,
        ]
        result.append("|".join(fields))
    return result


def build_coded_text(text: Optional[AnyText]) -> Optional[DvCodedTextRecord]:
    """Construit le sous-enregistrement d'un texte; l'absence est propagée (None → None)."""
    if text is None:
        return None

    record = DvCodedTextRecord(
        value=text.value,
        formatting=text.formatting,
        language=build_code_phrase(text.language),
        encoding=build_code_phrase(text.encoding),
        term_mapping=build_term_mapping_strings(text.mappings),
    )

    if isinstance(text, DvCodedText):
        record.defining_code = build_code_phrase(text.defining_code)

    return record


def build_party(session: Session, proxy: PartyProxy) -> uuid.UUID:
    """
    Insère la partie identifiée correspondant au PARTY_PROXY.

    Seules les parties nommées (PARTY_IDENTIFIED et sa spécialisation
    PARTY_RELATED) sont prises en charge.

    Raises:
        UnsupportedPartyError: pour toute autre variante (PARTY_SELF...)
    """
    if not isinstance(proxy, RMPartyIdentified):
        raise UnsupportedPartyError(getattr(proxy, "type_", type(proxy).__name__))

    party = PartyIdentified(
        name=proxy.name,
        party_type=PartyType.PARTY_IDENTIFIED,
        object_id_type=PartyRefIdType.UNDEFINED,
    )
    session.add(party)
    session.flush()
    return party.id
