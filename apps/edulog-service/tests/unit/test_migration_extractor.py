import json
import uuid

from edulog.migration import SupabaseExtractor
from edulog.migration.config import MigrationConfig
from edulog.migration.source import ExtractionError


class FakeSource:
    def __init__(self, tables, *, failing=(), connected=True, counts=None):
        self.tables = tables
        self.failing = set(failing)
        self.connected = connected
        self.counts = counts or {}
        self.page_calls = []

    def test_connection(self):
        return self.connected

    def count(self, table, filters=()):
        if table in self.failing:
            raise ExtractionError(f"{table}: source returned HTTP 500", status_code=500)
        return self.counts.get(table, len(self.tables.get(table, [])))

    def fetch_page(self, table, *, offset, limit, order_by="created_at", filters=()):
        self.page_calls.append((table, offset, limit))
        return self.tables.get(table, [])[offset:offset + limit]


def _profile(email):
    return {"id": str(uuid.uuid4()), "email": email, "created_at": "2024-01-01T00:00:00Z"}


def _config(tmp_path, **kw):
    base = dict(
        supabase_url="https://proj.supabase.co",
        service_role_key="k",
        output_dir=str(tmp_path),
        batch_size=2,
        tables=["user_profiles", "posts"],
        filters={},
    )
    base.update(kw)
    return MigrationConfig(**base)


def test_run_pages_transforms_and_writes_artifacts(tmp_path):
    profiles = [_profile(f"u{i}@example.com") for i in range(3)] + [_profile("broken")]
    source = FakeSource({"user_profiles": profiles, "posts": []})
    report = SupabaseExtractor(_config(tmp_path), source, sleep=lambda s: None).run()

    assert report["migration"]["status"] == "SUCCESS"
    stats = report["tables"]["user_profiles"]
    assert stats["record_count"] == 3
    assert stats["filtered_count"] == 1
    assert stats["priority"] == "HIGH"
    # 4 rows with page size 2: two full pages and one empty page
    assert [c[1] for c in source.page_calls if c[0] == "user_profiles"] == [0, 2, 4]

    with open(tmp_path / "user_profiles.json", encoding="utf-8") as fh:
        rows = json.load(fh)
    assert all("user_id" in r and "id" not in r for r in rows)
    assert (tmp_path / "user_profiles_inserts.sql").exists()
    assert not (tmp_path / "posts_inserts.sql").exists()
    assert (tmp_path / "migration_report.json").exists()
    assert (tmp_path / "MIGRATION_SUMMARY.md").exists()
    assert "posts: source table is empty" in report["warnings"]
    assert "user_profiles: 1 records failed validation and were skipped" in report["warnings"]


def test_failed_table_is_recorded_and_run_continues(tmp_path):
    source = FakeSource({"user_profiles": [_profile("a@example.com")]}, failing={"posts"})
    report = SupabaseExtractor(_config(tmp_path), source, sleep=lambda s: None).run()
    assert report["migration"]["status"] == "PARTIAL_FAILURE"
    assert report["errors"][0]["table"] == "posts"
    assert report["tables"]["user_profiles"]["record_count"] == 1


def test_count_mismatch_is_a_warning(tmp_path):
    source = FakeSource({"user_profiles": [_profile("a@example.com")]}, counts={"user_profiles": 5})
    extractor = SupabaseExtractor(_config(tmp_path, tables=["user_profiles"]), source, sleep=lambda s: None)
    report = extractor.run()
    assert "user_profiles: expected 5 records, extracted 1" in report["warnings"]


def test_dry_run_writes_only_reports(tmp_path):
    source = FakeSource({"user_profiles": [_profile("a@example.com")], "posts": []})
    report = SupabaseExtractor(_config(tmp_path, dry_run=True), source, sleep=lambda s: None).run()
    assert report["migration"]["dry_run"] is True
    assert not (tmp_path / "user_profiles.json").exists()
    assert (tmp_path / "migration_report.json").exists()


def test_connection_failure_extracts_nothing(tmp_path):
    source = FakeSource({}, connected=False)
    report = SupabaseExtractor(_config(tmp_path), source, sleep=lambda s: None).run()
    assert report["statistics"]["tables_processed"] == 0
    assert report["errors"][0]["table"] == "*"
    assert source.page_calls == []


def test_sleeps_between_batches_and_tables(tmp_path):
    naps = []
    profiles = [_profile(f"u{i}@example.com") for i in range(2)]
    source = FakeSource({"user_profiles": profiles, "posts": []})
    SupabaseExtractor(_config(tmp_path), source, sleep=naps.append).run()
    # one full page of profiles, then the gap between the two tables
    assert naps == [0.1, 0.2]
