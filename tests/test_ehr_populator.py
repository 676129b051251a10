"""
Tests de bout en bout du chargement concurrent (EHR + statut + compositions).
"""

import random
import threading
import time
import uuid

import pytest
from sqlalchemy import func
from sqlmodel import Session, select

from loader.converters.rm_types import CodePhrase, ObjectId
from loader.db import create_loader_engine, init_db
from loader.models import Composition, Ehr, Entry, EventContext, Participation, Status
from loader.models_audit import AuditDetails, Contribution, ContributionDataType
from loader.models_reference import PartyIdentified, PartyType, System
from loader.services.ehr_populator import EhrPopulator, default_worker_count
from loader.services.fixtures import EHR_STATUS_FIXTURE, load_composition, load_compositions, load_json_resource
from loader.services.reference_data import bootstrap_context
from loader.utils.error_handling import TerritoryNotFoundError
from loader.utils.structured_logging import metrics


def _count(session: Session, model) -> int:
    return session.exec(select(func.count()).select_from(model)).one()


@pytest.fixture
def engine(tmp_path):
    """Base SQLite fichier partagée par les workers."""
    engine = create_loader_engine(f"sqlite:///{tmp_path / 'loader.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def context(engine):
    with Session(engine) as session:
        return bootstrap_context(session, "Europe/Berlin")


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics.reset()
    yield
    metrics.reset()


def test_empty_pool_rejected(engine, context):
    with pytest.raises(ValueError):
        EhrPopulator(engine, context, [])


def test_two_ehr_one_composition_each(engine, context):
    populator = EhrPopulator(
        engine,
        context,
        [load_composition("compositions/blood_pressure.json")],
        ehr_status_details=load_json_resource(EHR_STATUS_FIXTURE),
        max_workers=2,
    )

    result = populator.populate(2, 1)

    assert len(result.ehr_ids) == 2
    assert result.composition_count == 2
    with Session(engine) as session:
        assert _count(session, Ehr) == 2
        assert _count(session, Status) == 2
        assert _count(session, Composition) == 2
        assert _count(session, Entry) == 2
        assert _count(session, EventContext) == 2
        assert _count(session, Participation) == 4
        assert _count(session, Contribution) == 4
        # une contribution + un audit propre par statut et par composition
        assert _count(session, AuditDetails) == 8

        contributions = session.exec(select(Contribution)).all()
        audits = [c.has_audit for c in contributions]
        audits += [s.has_audit for s in session.exec(select(Status)).all()]
        audits += [c.has_audit for c in session.exec(select(Composition)).all()]
        assert len(set(audits)) == len(audits)

    assert metrics.get_metrics("insert_composition")["success_count"] == 2


def test_status_references_resolve(engine, context):
    status_details = load_json_resource(EHR_STATUS_FIXTURE)
    populator = EhrPopulator(
        engine,
        context,
        [load_composition("compositions/virologischer_befund.json")],
        ehr_status_details=status_details,
    )

    result = populator.populate(3, 1)

    with Session(engine) as session:
        for ehr_id in result.ehr_ids:
            ehr = session.get(Ehr, ehr_id)
            assert session.get(System, ehr.system_id) is not None

            status = session.exec(select(Status).where(Status.ehr_id == ehr_id)).one()
            party = session.get(PartyIdentified, status.party)
            assert party.party_type == PartyType.PARTY_SELF
            assert party.party_ref_namespace == "patients"
            assert session.get(AuditDetails, status.has_audit).description == "Create EHR_STATUS"

            contribution = session.get(Contribution, status.in_contribution)
            assert contribution.ehr_id == ehr_id
            assert contribution.contribution_type == ContributionDataType.EHR

            assert status.archetype_node_id == "openEHR-EHR-ITEM_TREE.fake.v1"
            assert status.name["value"] == "Created by Test Data Loader"
            assert status.other_details == status_details
            assert status.is_queryable and status.is_modifiable
            assert status.sys_period_upper is None


def test_compositions_drawn_from_pool(engine, context):
    compositions = load_compositions()
    populator = EhrPopulator(engine, context, compositions, max_workers=2, rng=random.Random(42))

    result = populator.populate(2, 10)

    assert result.composition_count == 20
    with Session(engine) as session:
        assert _count(session, Composition) == 20
        template_ids = set(session.exec(select(Entry.template_id)).all())
        assert template_ids <= {c.template_id for c in compositions}
        for ehr_id in result.ehr_ids:
            count = session.exec(
                select(func.count()).select_from(Composition).where(Composition.ehr_id == ehr_id)
            ).one()
            assert count == 10


def test_zero_ehr(engine, context):
    populator = EhrPopulator(engine, context, [load_composition("compositions/blood_pressure.json")])

    result = populator.populate(0, 5)

    assert result.ehr_ids == []
    with Session(engine) as session:
        assert _count(session, Ehr) == 0


def test_failure_aborts_run(engine, context):
    broken = load_composition("compositions/blood_pressure.json").model_copy(
        update={"territory": CodePhrase(terminology_id=ObjectId(value="ISO_3166-1"), code_string="XX")}
    )
    populator = EhrPopulator(engine, context, [broken], max_workers=1)

    with pytest.raises(TerritoryNotFoundError):
        populator.populate(3, 2)

    with Session(engine) as session:
        # les EHR déjà validés restent, aucune composition n'a été écrite
        assert _count(session, Ehr) >= 1
        assert _count(session, Composition) == 0
        composition_contributions = session.exec(
            select(Contribution).where(Contribution.contribution_type == ContributionDataType.COMPOSITION)
        ).all()
        assert composition_contributions == []

    assert metrics.get_metrics("insert_composition")["error_count"] >= 1


def test_status_details_default_to_fixture(engine, context):
    populator = EhrPopulator(engine, context, [load_composition("compositions/blood_pressure.json")])

    result = populator.populate(1, 1)

    with Session(engine) as session:
        status = session.exec(select(Status).where(Status.ehr_id == result.ehr_ids[0])).one()
        assert status.other_details == load_json_resource(EHR_STATUS_FIXTURE)


def _record_worker_threads(monkeypatch):
    """Remplace le travail par EHR par un relevé du thread exécutant."""
    threads = set()
    lock = threading.Lock()

    def fake_populate_one(self, compositions_per_ehr):
        with lock:
            threads.add(threading.current_thread().name)
        time.sleep(0.01)
        return uuid.uuid4()

    monkeypatch.setattr(EhrPopulator, "_populate_one", fake_populate_one)
    return threads


def test_default_pool_is_bounded(engine, context, monkeypatch):
    threads = _record_worker_threads(monkeypatch)
    populator = EhrPopulator(engine, context, [load_composition("compositions/blood_pressure.json")])

    result = populator.populate(60, 1)

    assert len(result.ehr_ids) == 60
    assert len(threads) <= default_worker_count() <= 32
    assert all(name.startswith("ehr-loader") for name in threads)


def test_explicit_pool_size(engine, context, monkeypatch):
    threads = _record_worker_threads(monkeypatch)
    populator = EhrPopulator(
        engine, context, [load_composition("compositions/blood_pressure.json")], max_workers=2
    )

    populator.populate(10, 1)

    assert 1 <= len(threads) <= 2
