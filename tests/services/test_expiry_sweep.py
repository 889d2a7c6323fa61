"""
Tests for the expiry sweep: persisting EXPIRED for overdue PENDING
requests, from the service and from the command-line job.
"""

from datetime import timedelta

import pytest
from sqlalchemy import select

from approval_kernel.db import engine as db_engine_module
from approval_kernel.domain.approval import ApprovalStatus
from approval_kernel.models.approval import ApprovalRequestModel
from scripts.expire_requests import main
from tests.factories import (
    MANAGER,
    coupon_payload,
    flash_sale_payload,
    price_change_payload,
)


def _stored_status(session, request_id) -> str:
    return session.execute(
        select(ApprovalRequestModel.status)
        .where(ApprovalRequestModel.request_id == request_id)
    ).scalar_one()


class TestSweep:
    def test_persists_expired_for_overdue_only(self, workflow, session, deterministic_clock):
        flash = workflow.create("FLASH_SALE", flash_sale_payload())          # 24h
        coupon = workflow.create("COUPON_CREATION", coupon_payload(value="40"))  # 48h

        deterministic_clock.advance(hours=30)
        expired = workflow.expire_stale_requests()

        assert expired == [flash.request_id]
        assert _stored_status(session, flash.request_id) == "EXPIRED"
        assert _stored_status(session, coupon.request_id) == "PENDING"

    def test_deadline_is_inclusive(self, workflow, deterministic_clock, base_time):
        record = workflow.create("FLASH_SALE", flash_sale_payload())
        assert workflow.expire_stale_requests(as_of=base_time + timedelta(hours=24)) == [
            record.request_id
        ]

    def test_leaves_decided_requests_alone(self, workflow, session, deterministic_clock, as_user):
        record = workflow.create("FLASH_SALE", flash_sale_payload())
        as_user(MANAGER)
        workflow.reject(record.request_id, "not this week")
        auto = workflow.create("PRICE_CHANGE", price_change_payload(change="5"))

        deterministic_clock.advance(hours=100)
        assert workflow.expire_stale_requests() == []
        assert _stored_status(session, record.request_id) == "REJECTED"
        assert _stored_status(session, auto.request_id) == "APPROVED"

    def test_idempotent(self, workflow, deterministic_clock):
        workflow.create("FLASH_SALE", flash_sale_payload())
        deterministic_clock.advance(hours=25)
        assert len(workflow.expire_stale_requests()) == 1
        assert workflow.expire_stale_requests() == []

    def test_reads_agree_before_and_after(self, workflow, deterministic_clock):
        record = workflow.create("FLASH_SALE", flash_sale_payload())
        deterministic_clock.advance(hours=25)
        before = workflow.get(record.request_id)
        workflow.expire_stale_requests()
        after = workflow.get(record.request_id)
        assert before.status is after.status is ApprovalStatus.EXPIRED

    def test_stats_agree_before_and_after(self, workflow, deterministic_clock):
        workflow.create("FLASH_SALE", flash_sale_payload())
        workflow.create("COUPON_CREATION", coupon_payload(value="40"))
        deterministic_clock.advance(hours=25)
        before = workflow.get_stats()
        workflow.expire_stale_requests()
        assert workflow.get_stats() == before
        assert before.expired == 1
        assert before.pending == 1

    def test_logs_count(self, workflow, deterministic_clock, captured_logs):
        workflow.create("FLASH_SALE", flash_sale_payload())
        deterministic_clock.advance(hours=25)
        workflow.expire_stale_requests()
        swept = [r for r in captured_logs() if r["message"] == "approval_requests_expired"]
        assert swept[0]["count"] == 1

    def test_without_auto_commit_only_flushes(self, make_workflow, session, deterministic_clock):
        workflow = make_workflow()
        record = workflow.create("FLASH_SALE", flash_sale_payload())
        deterministic_clock.advance(hours=25)

        sweeper = make_workflow(auto_commit=False)
        assert sweeper.expire_stale_requests() == [record.request_id]
        session.rollback()
        assert _stored_status(session, record.request_id) == "PENDING"


class TestExpireRequestsScript:
    @pytest.fixture
    def database_url(self, db_engine, monkeypatch):
        """Keep the job on the suite's engine instead of building a new one."""
        monkeypatch.setattr(db_engine_module, "init_engine_from_url", lambda url: db_engine)
        return db_engine.url.render_as_string(hide_password=False)

    def test_expires_overdue(self, workflow, session, base_time, database_url, capsys):
        record = workflow.create("FLASH_SALE", flash_sale_payload())
        as_of = (base_time + timedelta(hours=25)).isoformat()

        assert main(["--database-url", database_url, "--as-of", as_of]) == 0

        out = capsys.readouterr().out
        assert str(record.request_id) in out
        assert "1 request(s) expired" in out
        session.expire_all()
        assert _stored_status(session, record.request_id) == "EXPIRED"

    def test_dry_run_changes_nothing(self, workflow, session, base_time, database_url, capsys):
        record = workflow.create("FLASH_SALE", flash_sale_payload())
        as_of = (base_time + timedelta(hours=25)).replace(tzinfo=None).isoformat()

        assert main(["--database-url", database_url, "--as-of", as_of, "--dry-run"]) == 0

        out = capsys.readouterr().out
        assert "1 overdue request(s)" in out
        assert "(dry run)" in out
        assert _stored_status(session, record.request_id) == "PENDING"

    def test_requires_database_url(self, monkeypatch, capsys):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        assert main([]) == 2
        assert "no database URL" in capsys.readouterr().err

    def test_bad_timestamp_rejected(self):
        with pytest.raises(SystemExit):
            main(["--database-url", "sqlite://", "--as-of", "yesterday"])
