"""Unit tests for the transactional session helpers."""

import pytest

from tenantfeatures.db.models import Tenant
from tenantfeatures.db.session import after_commit, get_session, unit_of_work


def _count_tenants(session_factory):
    with get_session(session_factory) as session:
        return session.query(Tenant).count()


def test_unit_of_work_commits_when_it_owns_the_transaction(session_factory, db_session):
    with unit_of_work(db_session):
        db_session.add(Tenant(tenancy_name="acme", name="Acme"))

    assert not db_session.in_transaction()
    db_session.close()
    assert _count_tenants(session_factory) == 1


def test_unit_of_work_rolls_back_on_error(session_factory, db_session):
    with pytest.raises(RuntimeError):
        with unit_of_work(db_session):
            db_session.add(Tenant(tenancy_name="acme", name="Acme"))
            db_session.flush()
            raise RuntimeError("boom")

    db_session.close()
    assert _count_tenants(session_factory) == 0


def test_nested_unit_of_work_only_rolls_back_its_savepoint(db_session):
    with db_session.begin():
        db_session.add(Tenant(tenancy_name="outer", name="Outer"))
        db_session.flush()

        with pytest.raises(RuntimeError):
            with unit_of_work(db_session):
                db_session.add(Tenant(tenancy_name="inner", name="Inner"))
                db_session.flush()
                raise RuntimeError("boom")

    names = [t.tenancy_name for t in db_session.query(Tenant).all()]
    assert names == ["outer"]


def test_after_commit_runs_immediately_without_transaction(db_session):
    calls = []
    after_commit(db_session, lambda: calls.append("ran"))
    assert calls == ["ran"]


def test_after_commit_waits_for_outer_commit(db_session):
    calls = []
    with db_session.begin():
        with unit_of_work(db_session):
            after_commit(db_session, lambda: calls.append("ran"))
        assert calls == []

    assert calls == ["ran"]


def test_after_commit_callbacks_dropped_on_rollback(db_session):
    calls = []
    db_session.begin()
    after_commit(db_session, lambda: calls.append("ran"))
    db_session.rollback()

    with db_session.begin():
        pass

    assert calls == []


def test_after_commit_ignores_savepoint_release(db_session):
    calls = []
    with db_session.begin():
        with unit_of_work(db_session):
            after_commit(db_session, lambda: calls.append("first"))
        with unit_of_work(db_session):
            after_commit(db_session, lambda: calls.append("second"))
        assert calls == []

    assert calls == ["first", "second"]
