from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from core import InsightCard, NarrativeAnalysis, Owner
from storage import (
    Audience,
    CTARepository,
    IntelligenceRepository,
    Organization,
    OrganizationIntelligence,
    OrganizationsRepository,
    utcnow,
)
from utils.exceptions import OrganizationConflictError, StorageError
from conftest import DEFAULT_ANALYSIS, make_scenarios, make_scrape


URL = "https://example.com"


def _count(database, model, *criteria) -> int:
    with database.session_scope() as session:
        stmt = select(func.count()).select_from(model)
        for criterion in criteria:
            stmt = stmt.where(criterion)
        return int(session.scalar(stmt) or 0)


@pytest.mark.asyncio
async def test_save_analysis_creates_organization_snapshot_and_ctas(persistence, database) -> None:
    saved = await persistence.save_analysis(
        url=URL,
        owner=Owner(session_id="sess-1"),
        analysis=dict(DEFAULT_ANALYSIS),
        scrape=make_scrape(URL),
    )

    assert saved.stored_cta_count == 3
    assert len(saved.ctas) == 3
    with database.session_scope() as session:
        organization = session.get(Organization, saved.organization_id)
        assert organization.slug == "example-bakery"
        assert organization.session_id == "sess-1"
        assert organization.owner_user_id is None
        assert organization.has_cta_data is True
        assert organization.social_handles == {"instagram": "examplebakery"}
        snapshot = session.get(OrganizationIntelligence, saved.snapshot_id)
        assert snapshot.is_current is True
        assert snapshot.analysis_confidence_score == 0.75
        assert snapshot.data_sources == ["website_analysis"]
        assert snapshot.customer_scenarios == [{"customerProblem": "No time to bake"}]
        assert snapshot.scrape_metadata["title"] == "Example Bakery"


@pytest.mark.asyncio
async def test_reanalysis_keeps_one_current_snapshot(persistence, database) -> None:
    owner = Owner(session_id="sess-1")
    first = await persistence.save_analysis(url=URL, owner=owner, analysis=dict(DEFAULT_ANALYSIS), scrape=make_scrape(URL))
    second = await persistence.save_analysis(url=URL, owner=owner, analysis=dict(DEFAULT_ANALYSIS), scrape=make_scrape(URL))

    assert first.organization_id == second.organization_id
    assert first.snapshot_id != second.snapshot_id
    assert _count(database, OrganizationIntelligence, OrganizationIntelligence.organization_id == first.organization_id) == 2
    assert (
        _count(
            database,
            OrganizationIntelligence,
            OrganizationIntelligence.organization_id == first.organization_id,
            OrganizationIntelligence.is_current.is_(True),
        )
        == 1
    )
    current = await persistence.get_current_snapshot(first.organization_id)
    assert current.id == second.snapshot_id


@pytest.mark.asyncio
async def test_authenticated_user_adopts_anonymous_organization(persistence, database) -> None:
    anonymous = await persistence.save_analysis(
        url=URL, owner=Owner(session_id="sess-1"), analysis=dict(DEFAULT_ANALYSIS), scrape=make_scrape(URL)
    )
    adopted = await persistence.save_analysis(
        url=URL, owner=Owner(user_id="user-1"), analysis=dict(DEFAULT_ANALYSIS), scrape=make_scrape(URL)
    )

    assert adopted.organization_id == anonymous.organization_id
    with database.session_scope() as session:
        organization = session.get(Organization, adopted.organization_id)
        assert organization.owner_user_id == "user-1"
        assert organization.session_id is None


@pytest.mark.asyncio
async def test_other_session_reuses_unowned_organization(persistence) -> None:
    first = await persistence.save_analysis(
        url=URL, owner=Owner(session_id="sess-1"), analysis=dict(DEFAULT_ANALYSIS), scrape=make_scrape(URL)
    )
    second = await persistence.save_analysis(
        url=URL, owner=Owner(session_id="sess-2"), analysis=dict(DEFAULT_ANALYSIS), scrape=make_scrape(URL)
    )

    assert first.organization_id == second.organization_id


def test_slug_conflict_retries_with_timestamp_suffix(database) -> None:
    with database.session_scope() as session:
        repo = OrganizationsRepository(session)
        first = repo.upsert_for_owner(url="https://a.example", owner=Owner(user_id="u1"), name="Acme", values={})
        first_id = first.id
        second = repo.upsert_for_owner(url="https://b.example", owner=Owner(user_id="u2"), name="Acme", values={})

        assert repo.get(first_id).slug == "acme"
        assert second.slug.startswith("acme-")
        assert second.slug[len("acme-"):].isdigit()
        assert second.id != first_id


def test_slug_conflict_gives_up_after_attempts(database) -> None:
    with database.session_scope() as session:
        repo = OrganizationsRepository(session)
        repo.upsert_for_owner(url="https://a.example", owner=Owner(user_id="u1"), name="Acme", values={})

        with pytest.raises(OrganizationConflictError) as excinfo:
            repo.upsert_for_owner(
                url="https://b.example", owner=Owner(user_id="u2"), name="Acme", values={}, max_attempts=1
            )

    assert isinstance(excinfo.value, StorageError)
    assert excinfo.value.attempts == 1


def test_cta_replacement_collapses_natural_key_duplicates(database) -> None:
    with database.session_scope() as session:
        organization = OrganizationsRepository(session).upsert_for_owner(
            url=URL, owner=Owner(user_id="u1"), name="Example", values={}
        )
        repo = CTARepository(session)
        stored = repo.replace_for_organization(
            organization.id,
            URL,
            [
                {"text": "Order now", "type": "button", "placement": "header", "conversion_potential": 90},
                {"text": "Order now", "type": "button", "placement": "header", "conversion_potential": 95},
                None,
                {"text": "Call us", "type": "phone", "placement": "footer", "conversion_potential": 60},
            ],
        )
        top = repo.list_top(organization.id, 5)

        assert stored == 3
        assert repo.count_for_organization(organization.id) == 2
        assert [cta["text"] for cta in top] == ["Order now", "Call us"]
        assert top[0]["conversion_potential"] == 95
        assert top[0]["type"] == "button"

        assert repo.replace_for_organization(organization.id, URL, []) == 0
        assert repo.count_for_organization(organization.id) == 0


@pytest.mark.asyncio
async def test_narrative_and_scenarios_are_stored_on_snapshot(persistence, database) -> None:
    owner = Owner(user_id="user-1")
    saved = await persistence.save_analysis(url=URL, owner=owner, analysis=dict(DEFAULT_ANALYSIS), scrape=make_scrape(URL))

    await persistence.save_narrative(
        saved.snapshot_id,
        NarrativeAnalysis(narrative="Story", confidence=0.9, cards=[InsightCard(heading="Insight")]),
    )
    inserted = await persistence.save_scenarios(saved.snapshot_id, owner, make_scenarios(3))

    assert inserted == 3
    assert await persistence.count_snapshot_scenarios(saved.snapshot_id) == 3
    scenarios = await persistence.list_snapshot_scenarios(saved.snapshot_id)
    assert [s["customerProblem"] for s in scenarios] == ["Problem 0", "Problem 1", "Problem 2"]
    assert [s["priority"] for s in scenarios] == [1, 2, 3]

    existing = await persistence.list_existing_audiences(owner)
    assert {item["customer_problem"] for item in existing} == {"Problem 0", "Problem 1", "Problem 2"}
    assert await persistence.list_existing_audiences(Owner(session_id="someone-else")) == []

    with database.session_scope() as session:
        snapshot = IntelligenceRepository(session).get(saved.snapshot_id)
        assert snapshot.narrative_analysis == "Story"
        assert snapshot.narrative_confidence == 0.9
        assert snapshot.key_insights[0]["heading"] == "Insight"
        assert len(snapshot.customer_scenarios) == 3
    assert _count(database, Audience, Audience.user_id == "user-1") == 3


@pytest.mark.asyncio
async def test_find_recent_organization_filters_by_age(persistence) -> None:
    saved = await persistence.save_analysis(
        url=URL, owner=Owner(session_id="sess-1"), analysis=dict(DEFAULT_ANALYSIS), scrape=make_scrape(URL)
    )

    found = await persistence.find_recent_organization([URL, "http://example.com"], utcnow() - timedelta(days=1))
    missing = await persistence.find_recent_organization([URL], utcnow() + timedelta(days=1))

    assert found.id == saved.organization_id
    assert missing is None


def test_insert_race_updates_the_row_created_by_the_other_run(database, monkeypatch) -> None:
    with database.session_scope() as session:
        repo = OrganizationsRepository(session)
        original = repo.upsert_for_owner(
            url=URL, owner=Owner(user_id="u1"), name="Acme", values={"description": "first"}
        )
        original_id = original.id

        # the concurrent run resolved before the other insert was visible
        real_resolve = repo.resolve_for_owner
        lookups = []

        def _resolve(url, owner):
            lookups.append(url)
            if len(lookups) == 1:
                return None, False
            return real_resolve(url, owner)

        monkeypatch.setattr(repo, "resolve_for_owner", _resolve)
        winner = repo.upsert_for_owner(
            url=URL, owner=Owner(user_id="u1"), name="Acme", values={"description": "second"}
        )

        assert winner.id == original_id
        assert winner.slug == "acme"
        assert len(lookups) == 2

    assert _count(database, Organization) == 1
    with database.session_scope() as session:
        assert session.get(Organization, original_id).description == "second"
