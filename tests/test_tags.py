"""Tests for hashtag extraction and the per-user tag library."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from worklog.crud.tags import get_tag, list_tag_library, record_tag_usage, suggest_tags
from worklog.db.session import Base
from worklog.services.tags import append_tag, extract_tags, extract_task_tags

# Ensure models are registered so metadata tables are created
from worklog.models import tag as tag_model  # noqa: F401


@pytest.fixture()
def db_session():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


def test_extract_tags_handles_unicode_and_duplicates():
    text = "Nomainīts #rūteris un #kabelis_2, vēlreiz #rūteris. Not a tag: # or #-x"
    assert extract_tags(text) == ["rūteris", "kabelis_2"]
    assert extract_tags("") == []
    assert extract_tags(None) == []


def test_task_tags_merge_title_then_note():
    assert extract_task_tags("Fix #router", "#cable and #router") == ["router", "cable"]
    assert extract_task_tags(None, "#only") == ["only"]


def test_append_tag():
    assert append_tag("Replaced cable", "cable") == "Replaced cable #cable"
    assert append_tag("", "#router") == "#router"
    assert append_tag("Has #router", "router") == "Has #router"


def test_record_usage_inserts_then_increments(db_session):
    record_tag_usage(db_session, "anna", ["router", "cable", "router"])
    assert get_tag(db_session, "anna", "router").usage_count == 1

    record_tag_usage(db_session, "anna", ["router"])
    assert get_tag(db_session, "anna", "router").usage_count == 2
    assert get_tag(db_session, "anna", "cable").usage_count == 1
    assert get_tag(db_session, "janis", "router") is None


def test_library_is_ordered_by_usage_then_name(db_session):
    record_tag_usage(db_session, "anna", ["beta", "alpha", "gamma"])
    record_tag_usage(db_session, "anna", ["gamma"])
    names = [t.name for t in list_tag_library(db_session, "anna")]
    assert names == ["gamma", "alpha", "beta"]
    assert len(list_tag_library(db_session, "anna", limit=1)) == 1


def test_suggest_matches_prefix_literally(db_session):
    record_tag_usage(db_session, "anna", ["Router", "route_a", "routeXa", "cable"])
    assert [t.name for t in suggest_tags(db_session, "anna", "#rou")] == ["Router", "routeXa", "route_a"]
    assert [t.name for t in suggest_tags(db_session, "anna", "route_")] == ["route_a"]
    assert suggest_tags(db_session, "anna", "zzz") == []


def test_suggest_folds_non_ascii_case(db_session):
    record_tag_usage(db_session, "anna", ["Ēka", "Šķūnis", "ēdnīca"])
    assert [t.name for t in suggest_tags(db_session, "anna", "ēk")] == ["Ēka"]
    assert [t.name for t in suggest_tags(db_session, "anna", "ŠĶ")] == ["Šķūnis"]
    assert sorted(t.name for t in suggest_tags(db_session, "anna", "Ē")) == ["Ēka", "ēdnīca"]
    assert len(suggest_tags(db_session, "anna", "", limit=2)) == 2
