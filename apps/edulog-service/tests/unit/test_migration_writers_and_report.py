import json
from datetime import datetime, timezone

from edulog.migration import report, writers


GENERATED = datetime(2025, 1, 1, tzinfo=timezone.utc)


def test_insert_script_batches_and_escapes():
    records = [
        {"id": 1, "name": "O'Brien", "tags": ["a", "b"], "active": True},
        {"id": 2, "name": "back\\slash", "tags": [], "meta": {"k": "v"}},
        {"id": 3, "name": None},
    ]
    sql = writers.generate_sql("people", records, insert_batch_size=2, generated_at=GENERATED)

    assert "-- Generated: 2025-01-01T00:00:00+00:00" in sql
    assert "-- Total records: 3" in sql
    assert "INSERT INTO people (active, id, meta, name, tags) VALUES" in sql
    assert "'O''Brien'" in sql
    assert "'back\\\\slash'" in sql
    assert "ARRAY['a','b']" in sql
    assert "'{}'" in sql
    assert "'{\"k\": \"v\"}'::jsonb" in sql
    assert "-- Batch 2 (3-3)" in sql
    assert sql.count("ON CONFLICT DO NOTHING;") == 2
    assert "ALTER TABLE people DISABLE TRIGGER ALL;" in sql
    assert sql.rstrip().endswith("SELECT COUNT(*) as imported_count FROM people;")


def test_copy_block_used_above_threshold():
    records = [{"id": 1, "note": "tab\there"}, {"id": 2, "note": None}]
    sql = writers.generate_sql("notes", records, copy_threshold=1, generated_at=GENERATED)
    assert "COPY notes (id, note) FROM stdin;" in sql
    assert "1\ttab\\there" in sql
    assert "2\t\\N" in sql
    assert "\n\\.\n" in sql
    assert "INSERT INTO" not in sql


def test_list_of_objects_and_booleans_render_as_json():
    records = [{"id": 1, "images": [{"url": "https://a/b.png"}], "flags": [True, False]}]
    sql = writers.generate_sql("posts", records, generated_at=GENERATED)
    assert "ARRAY['{\"url\": \"https://a/b.png\"}']" in sql
    assert "ARRAY['true','false']" in sql
    assert "'url'" not in sql

    copy = writers.generate_sql("posts", records, copy_threshold=0, generated_at=GENERATED)
    row = next(line for line in copy.splitlines() if line.startswith("{"))
    flags, _id, images = row.split("\t")
    assert flags == "{true,false}"
    assert images == '{"{\\\\"url\\\\": \\\\"https://a/b.png\\\\"}"}'


def test_copy_escapes_carriage_returns():
    records = [{"id": 1, "content": "line1\r\nline2"}]
    sql = writers.generate_sql("posts", records, copy_threshold=0, generated_at=GENERATED)
    assert "\r" not in sql
    assert "line1\\r\\nline2\t1" in sql




def test_format_file_size():
    assert writers.format_file_size(512) == "512 B"
    assert writers.format_file_size(2048) == "2.0 KB"
    assert writers.format_file_size(5 * 1024 * 1024) == "5.0 MB"


def test_write_json_and_sql(tmp_path):
    path = writers.write_json(str(tmp_path), "posts", [{"title": "한글"}])
    with open(path, encoding="utf-8") as fh:
        assert json.load(fh) == [{"title": "한글"}]
    sql_path = writers.write_sql(str(tmp_path), "posts", "SELECT 1;")
    assert sql_path.endswith("posts_inserts.sql")


def test_format_duration():
    assert report.format_duration(5) == "5s"
    assert report.format_duration(65) == "1m 5s"
    assert report.format_duration(3725) == "1h 2m 5s"


def _tables():
    return {
        "user_profiles": {"record_count": 1200, "duration_seconds": 2.5, "avg_per_second": 480, "priority": "HIGH"},
        "chat_messages": {"record_count": 300, "duration_seconds": 1.0, "avg_per_second": 300, "priority": "MEDIUM"},
    }


def test_build_report_status_and_priority_summary():
    ok = report.build_report(started_at=GENERATED, duration_seconds=10, tables=_tables(), errors=[], warnings=["w"])
    assert ok["migration"]["status"] == "SUCCESS"
    assert ok["statistics"]["total_records"] == 1500
    assert ok["statistics"]["records_per_second"] == 150
    assert ok["priority_summary"]["HIGH"] == {"count": 1, "records": 1200}
    assert ok["priority_summary"]["LOW"] == {"count": 0, "records": 0}

    failed = report.build_report(
        started_at=GENERATED,
        duration_seconds=0.2,
        tables={},
        errors=[{"table": "posts", "error": "boom", "timestamp": "t"}],
        warnings=[],
    )
    assert failed["migration"]["status"] == "PARTIAL_FAILURE"
    assert failed["statistics"]["records_per_second"] == 0


def test_summary_markdown_and_files(tmp_path):
    rep = report.build_report(
        started_at=GENERATED,
        duration_seconds=10,
        tables=_tables(),
        errors=[{"table": "posts", "error": "HTTP 500", "timestamp": "t"}],
        warnings=["posts: source table is empty"],
    )
    md = report.render_summary_markdown(rep)
    assert "# AIedulog Database Migration Report" in md
    assert "| user_profiles | 1,200 | 2.5s | 480/sec | HIGH |" in md
    assert "1. **posts:** HTTP 500" in md
    assert "## Next Steps" in md

    paths = report.write_reports(str(tmp_path), rep)
    assert (tmp_path / "migration_report.json").exists()
    assert (tmp_path / "MIGRATION_SUMMARY.md").read_text(encoding="utf-8") == md
    assert paths["report"].endswith("migration_report.json")
