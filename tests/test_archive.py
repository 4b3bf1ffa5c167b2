"""
Tests del empaquetado de dumps
"""
import json
import shutil
import sys
import tempfile
import unittest
import zipfile
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from dumpkeeper.config import Config
from dumpkeeper.models import DumpFile
from dumpkeeper.services.archive_service import ArchivePackager, format_file_size


class TestArchivePackager(unittest.TestCase):
    """Tests para ArchivePackager"""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.packager = ArchivePackager(self.temp_dir)

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def make_dump(self, database: str, content: str) -> DumpFile:
        path = self.temp_dir / f"temp_{database}_1.sql"
        path.write_text(content, encoding='utf-8')
        return DumpFile(database=database, name=f"{database}_backup_2026-10-18.sql", path=path)

    def test_zip_contains_each_dump_and_metadata(self):
        files = [
            self.make_dump("alpha", "-- alpha\nSELECT 1;\n"),
            self.make_dump("beta", "-- beta\nSELECT 2;\n"),
        ]
        result = self.packager.create_zip_backup(files, "database_backup_x.zip")

        self.assertTrue(result.success)
        self.assertEqual(result.databases, ("alpha", "beta"))
        self.assertEqual(result.file_size, Path(result.file_path).stat().st_size)

        with zipfile.ZipFile(result.file_path) as archive:
            names = sorted(archive.namelist())
            self.assertEqual(names, [
                "alpha_backup_2026-10-18.sql",
                "backup_metadata.json",
                "beta_backup_2026-10-18.sql",
            ])
            self.assertEqual(archive.read("alpha_backup_2026-10-18.sql").decode(), "-- alpha\nSELECT 1;\n")
            metadata = json.loads(archive.read("backup_metadata.json"))
            self.assertEqual(archive.getinfo("beta_backup_2026-10-18.sql").compress_type, zipfile.ZIP_DEFLATED)

        self.assertEqual(metadata["databases"], ["alpha", "beta"])
        self.assertEqual(metadata["totalFiles"], 2)
        self.assertEqual(metadata["creator"], Config.CREATOR)
        self.assertEqual(metadata["version"], Config.VERSION)
        self.assertIn("created", metadata)

        # Los temporarios se eliminan después de empaquetar
        self.assertFalse(any(f.path.exists() for f in files))

    def test_unreadable_dump_becomes_error_entry(self):
        ok = self.make_dump("alpha", "-- alpha\n")
        missing = DumpFile("beta", "beta_backup_2026-10-18.sql", self.temp_dir / "temp_beta_gone.sql")

        result = self.packager.create_zip_backup([ok, missing], "database_backup_x.zip")

        self.assertTrue(result.success)
        with zipfile.ZipFile(result.file_path) as archive:
            names = archive.namelist()
            self.assertIn("ERROR_beta_backup_2026-10-18.sql.txt", names)
            self.assertIn("alpha_backup_2026-10-18.sql", names)
            self.assertIn("Could not include", archive.read("ERROR_beta_backup_2026-10-18.sql.txt").decode())

    def test_zip_without_inputs_fails(self):
        result = self.packager.create_zip_backup([], "database_backup_x.zip")

        self.assertFalse(result.success)
        self.assertEqual(result.error_stage, "packaging")
        self.assertFalse((self.temp_dir / "database_backup_x.zip").exists())

    def test_combined_sql_uses_delimiters(self):
        files = [self.make_dump("alpha", "SELECT 1;\n"), self.make_dump("beta", "SELECT 2;\n")]
        result = self.packager.create_sql_backup(files, "database_backup_x.sql")

        self.assertTrue(result.success)
        content = Path(result.file_path).read_text(encoding='utf-8')
        self.assertIn("---- Database File: alpha_backup_2026-10-18.sql ----", content)
        self.assertIn("---- Database File: beta_backup_2026-10-18.sql ----", content)
        self.assertLess(content.index("SELECT 1;"), content.index("SELECT 2;"))
        self.assertIn("-- Total databases: 2", content)
        self.assertFalse(any(f.path.exists() for f in files))

    def test_combined_without_inputs_fails(self):
        result = self.packager.create_combined_backup([], "database_backup_x.sql")
        self.assertFalse(result.success)
        self.assertEqual(result.error_stage, "packaging")
        self.assertFalse((self.temp_dir / "database_backup_x.sql").exists())

    def test_single_sql_dump_is_renamed(self):
        dump = self.make_dump("alpha", "-- only alpha\n")
        result = self.packager.create_sql_backup([dump], "database_backup_x.sql")

        self.assertTrue(result.success)
        self.assertFalse(dump.path.exists())
        self.assertEqual(Path(result.file_path).read_text(encoding='utf-8'), "-- only alpha\n")
        self.assertEqual(result.databases, ("alpha",))


class TestFormatFileSize(unittest.TestCase):

    def test_units(self):
        self.assertEqual(format_file_size(0), "0 B")
        self.assertEqual(format_file_size(512), "512 B")
        self.assertEqual(format_file_size(1536), "1.5 KB")
        self.assertEqual(format_file_size(5 * 1024 * 1024), "5 MB")


if __name__ == '__main__':
    unittest.main()
