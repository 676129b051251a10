"""
Orchestration du chargement: EHR + EHR_STATUS puis N compositions par EHR.

Principe:
- Les EHR sont traités en parallèle par un pool borné de threads; chaque
  worker ouvre sa propre session. Sans taille explicite, le pool prend la
  borne par défaut de `ThreadPoolExecutor`, plafonnée au nombre d'EHR.
- Pour un EHR donné, les compositions sont insérées séquentiellement, chacune
  tirée au hasard (uniformément) dans le pool de compositions en mémoire.
- Politique d'échec: arrêt global. La première erreur annule les EHR pas
  encore démarrés puis est propagée; le travail déjà validé reste en base.
"""
from __future__ import annotations

import os
import random
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.engine import Engine
from sqlmodel import Session

from loader.context import LoaderContext
from loader.converters.rm_to_records import DvCodedTextRecord
from loader.converters.rm_types import Composition as RMComposition
from loader.models import Ehr, Status
from loader.models_audit import ContributionDataType
from loader.models_reference import PartyIdentified, PartyRefIdType, PartyType
from loader.services.audit_service import create_audit, create_contribution
from loader.services.composition_writer import CompositionWriter
from loader.services.fixtures import EHR_STATUS_FIXTURE, load_json_resource
from loader.utils.structured_logging import StructuredLogger, metrics

logger = StructuredLogger(__name__)

STATUS_DESCRIPTION = "Create EHR_STATUS"
STATUS_ARCHETYPE_NODE_ID = "openEHR-EHR-ITEM_TREE.fake.v1"
STATUS_NAME = "Created by Test Data Loader"


def default_worker_count() -> int:
    """Taille de pool par défaut, celle de `ThreadPoolExecutor` (au plus 32)."""
    return min(32, (os.cpu_count() or 1) + 4)


@dataclass
class PopulationResult:
    """Bilan d'une exécution."""

    ehr_ids: List[uuid.UUID] = field(default_factory=list)
    composition_count: int = 0
    elapsed_seconds: float = 0.0


class EhrPopulator:
    """Génère des EHR et leurs compositions en parallèle."""

    def __init__(
        self,
        engine: Engine,
        context: LoaderContext,
        compositions: Sequence[RMComposition],
        ehr_status_details: Optional[Dict[str, Any]] = None,
        max_workers: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ):
        if not compositions:
            raise ValueError("Le pool de compositions est vide")

        self.engine = engine
        self.context = context
        self.compositions = list(compositions)
        if ehr_status_details is None:
            ehr_status_details = load_json_resource(EHR_STATUS_FIXTURE)
        self.ehr_status_details = ehr_status_details
        self.max_workers = max_workers
        self.writer = CompositionWriter(context)
        self._rng = rng or random.Random()
        self._rng_lock = threading.Lock()

    def populate(self, ehr_count: int, compositions_per_ehr: int) -> PopulationResult:
        """Crée `ehr_count` EHR de `compositions_per_ehr` compositions chacun."""
        result = PopulationResult()
        if ehr_count < 1:
            return result

        workers = min(self.max_workers or default_worker_count(), ehr_count)
        start = time.time()

        with logger.operation(
            "populate",
            ehr=ehr_count,
            compositions=ehr_count * compositions_per_ehr,
            workers=workers,
        ):
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ehr-loader") as executor:
                futures = [
                    executor.submit(self._populate_one, compositions_per_ehr)
                    for _ in range(ehr_count)
                ]
                try:
                    for future in as_completed(futures):
                        ehr_id = future.result()
                        result.ehr_ids.append(ehr_id)
                        result.composition_count += compositions_per_ehr
                except Exception:
                    for pending in futures:
                        pending.cancel()
                    raise
                finally:
                    result.elapsed_seconds = time.time() - start

        return result

    def _populate_one(self, compositions_per_ehr: int) -> uuid.UUID:
        with Session(self.engine) as session:
            ehr_id = self.insert_ehr(session)
            self.insert_compositions(session, ehr_id, compositions_per_ehr)
            return ehr_id

    def insert_ehr(self, session: Session) -> uuid.UUID:
        """Crée l'EHR et son EHR_STATUS dans une même transaction."""
        try:
            ehr_id = self._create_ehr(session)
            self._create_status(session, ehr_id)
            session.commit()
        except Exception:
            session.rollback()
            raise
        return ehr_id

    def insert_compositions(self, session: Session, ehr_id: uuid.UUID, count: int) -> None:
        for _ in range(count):
            composition = self._random_composition()
            started = time.time()
            try:
                self.writer.write(session, ehr_id, composition)
            except Exception as e:
                metrics.record_operation(
                    "insert_composition", time.time() - started, status="error", error=type(e).__name__
                )
                logger.error(
                    "Composition insert failed",
                    ehr_id=ehr_id,
                    template_id=composition.template_id,
                    error=str(e),
                )
                raise
            metrics.record_operation("insert_composition", time.time() - started)

    def _random_composition(self) -> RMComposition:
        with self._rng_lock:
            return self._rng.choice(self.compositions)

    def _create_ehr(self, session: Session) -> uuid.UUID:
        ehr = Ehr(
            date_created=datetime.now(),
            date_created_tzid=self.context.zone_id,
            system_id=self.context.system_id,
        )
        session.add(ehr)
        session.flush()
        logger.debug("Created EHR", ehr_id=ehr.id)
        return ehr.id

    def _create_status(self, session: Session, ehr_id: uuid.UUID) -> uuid.UUID:
        party = PartyIdentified(
            party_ref_value=str(uuid.uuid4()),
            party_ref_scheme="id_scheme",
            party_ref_namespace="patients",
            party_ref_type="PERSON",
            party_type=PartyType.PARTY_SELF,
            object_id_type=PartyRefIdType.GENERIC_ID,
        )
        session.add(party)
        session.flush()

        status = Status(
            ehr_id=ehr_id,
            party=party.id,
            sys_transaction=datetime.now(),
            sys_period_lower=datetime.now(timezone.utc),
            has_audit=create_audit(session, self.context, STATUS_DESCRIPTION),
            in_contribution=create_contribution(
                session, self.context, ehr_id, ContributionDataType.EHR, STATUS_DESCRIPTION
            ),
            archetype_node_id=STATUS_ARCHETYPE_NODE_ID,
            name=DvCodedTextRecord(value=STATUS_NAME).to_column(),
            other_details=self.ehr_status_details,
        )
        session.add(status)
        session.flush()
        logger.debug("Created EHR_STATUS", status_id=status.id, ehr_id=ehr_id)
        return status.id
