"""
Test script for the CatalogBuilder pipeline, assembler, writer and CLI.
"""

import io
import json
import logging
import os
import shutil
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from datetime import date
from pathlib import Path
from unittest import mock

from law_fixtures import write_law_file
from lawcatalog.assembler import assemble
from lawcatalog.catalog_builder import CatalogBuilder
from lawcatalog.cli import main
from lawcatalog.errors import AssemblerInvariantError, DiscoveryError, IndexLoadError, WriteError
from lawcatalog.models import CatalogEntry, LawDate, ReconciliationFlag, RevisionEntry
from lawcatalog.writer import write_catalog


def catalog_entry(law_id: str) -> CatalogEntry:
    return CatalogEntry(
        law_id=law_id,
        title="T",
        promulgation_date=LawDate(era="Reiwa", year=3),
        law_type="Act",
        category="法律",
        current_file=f"{law_id}.xml",
        revision_history=[
            RevisionEntry(
                revision_key="20210601_000000000000000",
                revision_date=date(2021, 6, 1),
                file=f"{law_id}.xml",
            )
        ],
        reconciliation_flag=ReconciliationFlag.NO_INDEX,
    )


class CatalogTestCase(unittest.TestCase):
    def setUp(self):
        # Create a temporary directory
        self.test_dir = Path(tempfile.mkdtemp())
        # Remove it via addCleanup so per-test cleanups registered later run first
        self.addCleanup(shutil.rmtree, self.test_dir)
        self.src_dir = self.test_dir / "src"
        self.out_dir = self.test_dir / "out"
        self.src_dir.mkdir()
        self.out_dir.mkdir()
        self.out_file = self.out_dir / "catalog.json"

    def build(self, **kwargs):
        builder = CatalogBuilder(
            work_dir=self.src_dir, out_file=self.out_file, show_progress=False, **kwargs
        )
        return builder.run()

    def read_catalog(self):
        with open(self.out_file, "r", encoding="utf-8") as f:
            return json.load(f)


class TestCatalogBuilder(CatalogTestCase):
    def test_initialization(self):
        """Test that CatalogBuilder initializes correctly."""
        builder = CatalogBuilder(work_dir=self.src_dir, out_file=self.out_file)
        self.assertEqual(builder.work_dir, self.src_dir)
        self.assertEqual(builder.out_file, self.out_file)
        self.assertIsNone(builder.index_file)
        self.assertEqual(builder.parser.source, "egov")

    def test_validate_source_no_dir(self):
        """Test source validation with missing directory."""
        builder = CatalogBuilder(work_dir=self.test_dir / "nonexistent", out_file=self.out_file)
        with self.assertRaises(DiscoveryError):
            builder.validate_source()

    def test_catalog_contents(self):
        write_law_file(self.src_dir, "322AC0000000067", "19470417",
                       title="地方自治法", era="Showa", year="22", month="04", day="17",
                       law_num="昭和二十二年法律第六十七号")
        write_law_file(self.src_dir, "405CO0000000001", "19930101",
                       title="テスト政令", era="Heisei", year="5", law_type="CabinetOrder")

        summary = self.build()
        catalog = self.read_catalog()

        self.assertEqual(summary.laws_cataloged, 2)
        self.assertEqual(summary.skipped_count, 0)
        self.assertEqual([entry["law_id"] for entry in catalog],
                         ["322AC0000000067", "405CO0000000001"])
        first = catalog[0]
        self.assertEqual(first["title"], "地方自治法")
        self.assertEqual(first["promulgation_date"],
                         {"era": "Showa", "year": 22, "month": 4, "day": 17})
        self.assertEqual(first["law_type"], "Act")
        self.assertEqual(first["category"], "法律")
        self.assertEqual(first["law_num"], "昭和二十二年法律第六十七号")
        self.assertEqual(first["reconciliation_flag"], "no-index")
        self.assertTrue(Path(first["current_file"]).is_file())
        self.assertEqual(catalog[1]["category"], "政令")
        self.assertEqual(summary.flag_counts, {"no-index": 2})

    def test_revision_selection(self):
        law_dir = "322AC0000000001"
        for revision_date, amendment in [
            ("20190101", "000000000000000"),
            ("20210601", "503AC0000000036"),
            ("20200315", "502AC0000000010"),
        ]:
            write_law_file(self.src_dir, "322AC0000000001", revision_date, amendment,
                           subdir=law_dir, title=f"rev {revision_date}")

        self.build()
        [entry] = self.read_catalog()

        self.assertTrue(entry["current_file"].endswith("322AC0000000001_20210601_503AC0000000036.xml"))
        self.assertEqual(entry["title"], "rev 20210601")
        self.assertEqual(
            [revision["revision_date"] for revision in entry["revision_history"]],
            ["2019-01-01", "2020-03-15", "2021-06-01"],
        )
        self.assertEqual(
            entry["revision_history"][0]["patch_date"],
            {"era": "Heisei", "year": 31, "month": 1, "day": 1},
        )

    def test_fault_isolation(self):
        for i in range(1, 6):
            content = "<Law Era='Reiwa'" if i == 3 else None
            write_law_file(self.src_dir, f"503AC000000000{i}", content=content)

        summary = self.build()
        law_ids = [entry["law_id"] for entry in self.read_catalog()]

        self.assertEqual(len(law_ids), 4)
        self.assertNotIn("503AC0000000003", law_ids)
        self.assertEqual(summary.skipped_count, 1)
        self.assertEqual(summary.skipped_files[0].law_id, "503AC0000000003")
        self.assertEqual(summary.dropped_law_ids, ["503AC0000000003"])

    def test_failed_revision_does_not_drop_law(self):
        write_law_file(self.src_dir, "X1", "20190101", subdir="X1", title="old")
        write_law_file(self.src_dir, "X1", "20210101", subdir="X1", content="broken")

        summary = self.build()
        [entry] = self.read_catalog()

        self.assertEqual(entry["title"], "old")
        self.assertEqual(len(entry["revision_history"]), 1)
        self.assertEqual(summary.skipped_count, 1)
        self.assertEqual(summary.dropped_law_ids, [])

    def test_uniqueness(self):
        for law_id in ["B2", "A1", "C3"]:
            for revision_date in ["20190101", "20200101"]:
                write_law_file(self.src_dir, law_id, revision_date)

        self.build()
        law_ids = [entry["law_id"] for entry in self.read_catalog()]

        self.assertEqual(law_ids, ["A1", "B2", "C3"])

    def test_deterministic_output(self):
        for i in range(10):
            write_law_file(self.src_dir, f"50{i}AC0000000001", "20200101")
            write_law_file(self.src_dir, f"50{i}AC0000000001", "20210101", "503AC0000000036",
                           subdir=f"50{i}AC0000000001_20200101_000000000000000")

        self.build(max_concurrency=3)
        first = self.out_file.read_bytes()
        self.build(max_concurrency=7)
        second = self.out_file.read_bytes()

        self.assertEqual(first, second)

    def test_index_reconciliation(self):
        write_law_file(self.src_dir, "X", title="New Title")
        write_law_file(self.src_dir, "Y", title="Same")
        write_law_file(self.src_dir, "Z", title="Unindexed")
        index_file = self.test_dir / "index.csv"
        index_file.write_text("law_id,title\nX,Old Title\nY,Same\n", encoding="utf-8")

        summary = self.build(index_file=index_file, index_encoding="utf-8")
        catalog = {entry["law_id"]: entry for entry in self.read_catalog()}

        self.assertEqual(catalog["X"]["title"], "New Title")
        self.assertEqual(catalog["X"]["reconciliation_flag"], "field-mismatch")
        self.assertEqual(catalog["X"]["index_title"], "Old Title")
        self.assertEqual(catalog["Y"]["reconciliation_flag"], "matched")
        self.assertEqual(catalog["Z"]["reconciliation_flag"], "index-missing")
        self.assertEqual(summary.flag_counts,
                         {"field-mismatch": 1, "index-missing": 1, "matched": 1})

    def test_missing_index_is_fatal_and_leaves_output_alone(self):
        write_law_file(self.src_dir, "X")
        with self.assertRaises(IndexLoadError):
            self.build(index_file=self.test_dir / "missing.csv")
        self.assertFalse(self.out_file.exists())

    def test_missing_work_dir_is_reported_before_index(self):
        builder = CatalogBuilder(
            work_dir=self.test_dir / "nonexistent",
            out_file=self.out_file,
            index_file=self.test_dir / "missing.csv",
            show_progress=False,
        )
        with self.assertRaises(DiscoveryError):
            builder.run()
        self.assertFalse(self.out_file.exists())

    def test_empty_work_dir_writes_empty_catalog(self):
        summary = self.build()
        self.assertEqual(summary.laws_cataloged, 0)
        self.assertEqual(self.read_catalog(), [])


class TestAssembler(unittest.TestCase):
    def test_sorts_by_code_point(self):
        entries = [catalog_entry(law_id) for law_id in ["b", "B", "a", "A1", "A"]]
        self.assertEqual([e.law_id for e in assemble(entries)], ["A", "A1", "B", "a", "b"])

    def test_duplicate_law_id_is_an_invariant_violation(self):
        with self.assertRaises(AssemblerInvariantError) as ctx:
            assemble([catalog_entry("A"), catalog_entry("B"), catalog_entry("A")])
        self.assertEqual(ctx.exception.law_ids, ["A"])


class TestWriter(CatalogTestCase):
    def test_writes_utf8_json(self):
        write_catalog([catalog_entry("A")], self.out_file)
        text = self.out_file.read_text(encoding="utf-8")
        self.assertIn("法律", text)
        self.assertTrue(text.endswith("\n"))
        self.assertEqual(json.loads(text)[0]["law_id"], "A")
        self.assertEqual(list(self.out_dir.iterdir()), [self.out_file])

    def test_failed_write_keeps_previous_catalog(self):
        write_catalog([catalog_entry("A")], self.out_file)
        before = self.out_file.read_bytes()

        with mock.patch("lawcatalog.writer.os.replace", side_effect=PermissionError("denied")):
            with self.assertRaises(WriteError):
                write_catalog([catalog_entry("B")], self.out_file)

        self.assertEqual(self.out_file.read_bytes(), before)
        self.assertEqual(list(self.out_dir.iterdir()), [self.out_file])

    def test_unwritable_directory(self):
        write_catalog([catalog_entry("A")], self.out_file)
        before = self.out_file.read_bytes()

        with mock.patch("lawcatalog.writer.tempfile.mkstemp", side_effect=OSError(28, "No space left")):
            with self.assertRaises(WriteError):
                write_catalog([catalog_entry("B")], self.out_file)

        self.assertEqual(self.out_file.read_bytes(), before)

    def test_read_only_catalog_is_not_replaced(self):
        write_catalog([catalog_entry("A")], self.out_file)
        before = self.out_file.read_bytes()
        os.chmod(self.out_file, 0o444)
        self.addCleanup(os.chmod, self.out_file, 0o644)

        with self.assertRaises(WriteError):
            write_catalog([catalog_entry("B")], self.out_file)

        self.assertEqual(self.out_file.read_bytes(), before)
        self.assertEqual(list(self.out_dir.iterdir()), [self.out_file])

    def test_output_path_is_a_directory(self):
        target = self.out_dir / "taken"
        target.mkdir()
        with self.assertRaises(WriteError):
            write_catalog([catalog_entry("A")], target)
        self.assertEqual(list(self.out_dir.iterdir()), [target])


class TestCli(CatalogTestCase):
    def run_main(self, *argv):
        stdout = io.StringIO()
        with mock.patch("lawcatalog.cli.setup_logging",
                        return_value=logging.getLogger("lawcatalog.test")):
            with redirect_stdout(stdout):
                code = main(list(argv))
        return code, stdout.getvalue()

    def test_success_with_skipped_file(self):
        write_law_file(self.src_dir, "A1")
        write_law_file(self.src_dir, "B2", content="<Law")

        code, output = self.run_main(
            "--work", str(self.src_dir), "--output", str(self.out_file), "--no-progress"
        )

        self.assertEqual(code, 0)
        self.assertIn("Laws cataloged: 1", output)
        self.assertIn("Files skipped: 1", output)
        self.assertIn("B2", output)

    def test_missing_work_dir_fails(self):
        code, _ = self.run_main(
            "--work", str(self.test_dir / "nonexistent"), "--output", str(self.out_file)
        )
        self.assertEqual(code, 1)
        self.assertFalse(self.out_file.exists())

    def test_unwritable_output_fails_and_keeps_previous_catalog(self):
        write_law_file(self.src_dir, "A1")
        self.out_file.write_text("[]\n", encoding="utf-8")

        with mock.patch("lawcatalog.writer.os.replace", side_effect=PermissionError("denied")):
            code, _ = self.run_main(
                "--work", str(self.src_dir), "--output", str(self.out_file), "--no-progress"
            )

        self.assertEqual(code, 1)
        self.assertEqual(self.out_file.read_text(encoding="utf-8"), "[]\n")

    def test_max_concurrency_must_be_positive(self):
        for value in ("0", "-3", "many"):
            with self.subTest(value=value):
                with redirect_stderr(io.StringIO()), self.assertRaises(SystemExit) as ctx:
                    self.run_main(
                        "--work", str(self.src_dir), "--output", str(self.out_file),
                        "--max-concurrency", value,
                    )
                self.assertEqual(ctx.exception.code, 2)
        self.assertFalse(self.out_file.exists())


if __name__ == "__main__":
    unittest.main()
