"""Tests du schéma: colonnes horodatées naïves (heure murale) vs périodes."""

from datetime import datetime

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, select

from loader.db import create_loader_engine, init_db
from loader.models_reference import TemplateStore

LOCAL_TIME_COLUMNS = [
    ("ehr", "date_created"),
    ("status", "sys_transaction"),
    ("composition", "sys_transaction"),
    ("entry", "sys_transaction"),
    ("eventcontext", "start_time"),
    ("eventcontext", "end_time"),
    ("participation", "time_lower"),
    ("participation", "time_upper"),
    ("auditdetails", "time_committed"),
    ("templatestore", "sys_transaction"),
]


@pytest.fixture
def test_session():
    """Crée une session de test en mémoire."""
    engine = create_loader_engine("sqlite://", poolclass=StaticPool)
    init_db(engine)
    with Session(engine) as session:
        yield session


@pytest.mark.parametrize("table, column", LOCAL_TIME_COLUMNS)
def test_local_time_columns_are_naive(table, column):
    assert SQLModel.metadata.tables[table].c[column].type.timezone is False


def test_period_columns_are_aware():
    for table in ("status", "composition", "entry", "eventcontext", "participation"):
        assert SQLModel.metadata.tables[table].c["sys_period_lower"].type.timezone is True


def test_naive_timestamp_round_trip(test_session):
    written = datetime(2021, 4, 20, 10, 15, 30)
    test_session.add(TemplateStore(template_id="naive", content="<template/>", sys_transaction=written))
    test_session.commit()
    test_session.expire_all()

    template = test_session.exec(select(TemplateStore).where(TemplateStore.template_id == "naive")).one()
    assert template.sys_transaction == written
    assert template.sys_transaction.tzinfo is None


def test_default_transaction_time(test_session):
    test_session.add(TemplateStore(template_id="default", content="<template/>"))
    test_session.commit()

    template = test_session.exec(select(TemplateStore).where(TemplateStore.template_id == "default")).one()
    assert template.sys_transaction.tzinfo is None
    assert template.sys_transaction <= datetime.now()
