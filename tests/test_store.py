"""
Tests for SessionStore and the agreement document export.
"""

import sys
from dataclasses import replace
from datetime import date
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from discovery.errors import SessionNotFoundError
from discovery.wizard import AgreementDocument, DiscoveryWizard, SessionStore, new_session


@pytest.fixture
def store(tmp_path):
    return SessionStore(str(tmp_path / "sessions"))


def _agreed_session(name="Coastal Property Group"):
    wizard = DiscoveryWizard(new_session("doc-1"))
    wizard.update_snapshot(
        business_name=name,
        industry="Property Management",
        team_size="6-15 people",
        revenue_range="$500K - $1M",
        typical_day="Chasing maintenance vendors and answering tenant texts",
    )
    wizard.next_step()
    for pid in ("lead-response", "client-comms", "invoicing"):
        wizard.toggle_pain_point(pid)
    wizard.update_hours("lead-response", 12)
    wizard.update_hours("client-comms", 8)
    wizard.update_hours("invoicing", 3)
    for _ in range(4):
        wizard.next_step()
    return wizard


class TestSessionStore:
    def test_creates_data_dir(self, tmp_path):
        SessionStore(str(tmp_path / "a" / "b"))
        assert (tmp_path / "a" / "b").is_dir()

    def test_save_and_load(self, store):
        session = _agreed_session().session
        store.save_session(session)
        assert store.load_session(session.id) == session

    def test_missing_session(self, store):
        with pytest.raises(SessionNotFoundError):
            store.load_session("missing")

    def test_load_or_create_does_not_save(self, store):
        session = store.load_or_create("fresh")
        assert session.id == "fresh"
        assert store.get_item("discovery-session-fresh") is None

    def test_remove(self, store):
        session = new_session("gone")
        store.save_session(session)
        assert store.remove_session("gone") is True
        assert store.remove_session("gone") is False

    def test_voice_entries_are_independent(self, store):
        store.save_session(new_session("shared"))
        store.save_voice_session("shared", {"transcript": [], "messages": [], "insights": {}})
        store.remove_voice_session("shared")
        assert store.load_voice_session("shared") is None
        assert store.load_session("shared").id == "shared"

    def test_rejects_path_characters(self, store):
        with pytest.raises(ValueError):
            store.get_item("../etc/passwd")
        with pytest.raises(ValueError):
            store.load_session("a/b")

    def test_overwrite(self, store):
        session = new_session("s1")
        store.save_session(session)
        store.save_session(replace(session, current_step=2))
        assert store.load_session("s1").current_step == 2
        assert not list(Path(store.data_dir).glob("*.tmp"))


class TestAgreementDocument:
    def test_draft_text(self):
        wizard = _agreed_session()
        doc = AgreementDocument(wizard.session, today=date(2026, 3, 2))
        text = doc.to_text()

        assert "11-8 AI - DISCOVERY AGREEMENT" in text
        assert "Prepared for: Coastal Property Group" in text
        assert "Date: 03/02/2026" in text
        assert "DRAFT - not yet agreed" in text
        assert "AI Lead Response Agent" in text
        assert "Value-share: 12% of measurable value created" in text
        assert "First invoice: Day 60" in text
        assert "Client: ___________________" in text

    def test_agreed_text(self):
        wizard = _agreed_session()
        wizard.agree("Dana Smith", "dana@example.com")
        text = AgreementDocument(wizard.session).to_text()
        assert "DRAFT" not in text
        assert "Client: Dana Smith" in text
        assert "Agreed at: " in text

    def test_page_footers(self):
        doc = AgreementDocument(_agreed_session().session)
        pages = doc.to_text().split("\f")
        assert len(pages) == doc.page_count
        assert doc.page_count >= 2
        for number, page in enumerate(pages, 1):
            assert page.rstrip().endswith(f"[Page {number} of {doc.page_count}]")

    def test_filename(self):
        doc = AgreementDocument(_agreed_session("Acme  Plumbing Co").session)
        assert doc.filename == "11-8-AI-Agreement-Acme-Plumbing-Co.txt"

    def test_filename_without_name(self):
        session = new_session("x")
        assert AgreementDocument(session).filename == "11-8-AI-Agreement-Session.txt"

    def test_markdown(self):
        wizard = _agreed_session()
        markdown = AgreementDocument(wizard.session, today=date(2026, 3, 2)).to_markdown()
        assert markdown.startswith("# 11-8 AI - Discovery Agreement")
        assert "- **Status:** Draft" in markdown
        assert "Revenue range:** $500K - $1M" in markdown

    def test_empty_session_renders(self):
        session = new_session("empty")
        text = AgreementDocument(session).to_text()
        assert "[Page 1 of" in text

    def test_does_not_mutate_session(self):
        wizard = _agreed_session()
        session = wizard.session
        AgreementDocument(session).to_text()
        assert session == wizard.session
