from __future__ import annotations

from valuation_report.infrastructure.db.sqlite import SQLiteRepository


def test_upsert_replaces_existing_values(tmp_path):
    repo = SQLiteRepository(f"sqlite:///{tmp_path / 'reports.db'}")
    try:
        written = repo.upsert_key_values(
            [
                {"symbol": "AAA", "key": "valuation.trailing_pe", "value": 12.5},
                {"symbol": "AAA", "key": "info.name", "value": "AAA Inc"},
                {"symbol": "BBB", "key": "info.name", "value": "BBB Inc"},
                {"symbol": None, "key": "info.name", "value": "ignored"},
            ]
        )
        assert written == 3

        repo.upsert_key_values([{"symbol": "AAA", "key": "valuation.trailing_pe", "value": 13.0}])
        rows = repo.fetch_key_values("AAA")
    finally:
        repo.close()

    assert [r["key"] for r in rows] == ["info.name", "valuation.trailing_pe"]
    assert rows[1]["value"] == "13.0"


def test_empty_upsert_is_noop(tmp_path):
    repo = SQLiteRepository(f"sqlite:///{tmp_path / 'reports.db'}")
    try:
        assert repo.upsert_key_values([]) == 0
        assert repo.fetch_key_values("AAA") == []
    finally:
        repo.close()
