"""
Tests de la política de retención y del catálogo
"""
import json
import shutil
import sys
import tempfile
import unittest
from datetime import datetime, timedelta
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from dumpkeeper.models import BackupMetadata, RetentionSettings, month_bucket, week_bucket
from dumpkeeper.repositories.catalog_repository import BackupCatalog
from dumpkeeper.services.cleanup_service import CleanupService


def entry(file_name, created, backup_type='weekly', directory=Path('/nonexistent'), size=100):
    return BackupMetadata(
        file_name=file_name,
        file_path=str(directory / file_name),
        created=created,
        databases=['alpha'],
        backup_type=backup_type,
        size=size,
        week=week_bucket(created),
        month=month_bucket(created),
    )


def names(entries):
    return sorted(e.file_name for e in entries)


class TestRetentionPlan(unittest.TestCase):
    """Tests para CleanupService.plan (sin efectos secundarios)"""

    def test_keeps_newest_weeks(self):
        first_sunday = datetime(2026, 9, 27, 2, 0)
        entries = [entry(f"w{i}.zip", first_sunday + timedelta(weeks=i)) for i in range(4)]

        plan = CleanupService.plan(entries, RetentionSettings(keep_weekly=2, keep_monthly=3))

        self.assertEqual(names(plan.keep), ["w2.zip", "w3.zip"])
        self.assertEqual(names(plan.delete), ["w0.zip", "w1.zip"])

    def test_keeps_only_newest_entry_of_a_bucket(self):
        entries = [
            entry("sun.zip", datetime(2026, 10, 18, 2, 0)),
            entry("tue.zip", datetime(2026, 10, 20, 2, 0)),
            entry("sat.zip", datetime(2026, 10, 24, 2, 0)),
        ]
        plan = CleanupService.plan(entries, RetentionSettings())

        self.assertEqual(names(plan.keep), ["sat.zip"])
        self.assertEqual(names(plan.delete), ["sun.zip", "tue.zip"])

    def test_manual_backups_are_always_kept(self):
        entries = [entry(f"m{i}.zip", datetime(2025, 1, 5) + timedelta(weeks=i), 'manual') for i in range(10)]
        entries.append(entry("w.zip", datetime(2026, 10, 18)))

        plan = CleanupService.plan(entries, RetentionSettings(keep_weekly=1, keep_monthly=1))

        self.assertEqual(len(plan.keep), 11)
        self.assertEqual(plan.delete, [])

    def test_monthly_buckets_are_independent(self):
        entries = [
            entry("jul.zip", datetime(2026, 7, 1, 2, 0), 'monthly'),
            entry("aug.zip", datetime(2026, 8, 1, 2, 0), 'monthly'),
            entry("sep.zip", datetime(2026, 9, 1, 2, 0), 'monthly'),
            entry("oct.zip", datetime(2026, 10, 1, 2, 0), 'monthly'),
            entry("week.zip", datetime(2026, 10, 1, 2, 0), 'weekly'),
        ]
        plan = CleanupService.plan(entries, RetentionSettings(keep_weekly=1, keep_monthly=3))

        self.assertEqual(names(plan.keep), ["aug.zip", "oct.zip", "sep.zip", "week.zip"])
        self.assertEqual(names(plan.delete), ["jul.zip"])

    def test_week_buckets_sort_across_years(self):
        entries = [
            entry("old.zip", datetime(2025, 12, 28)),
            entry("new.zip", datetime(2026, 1, 1)),
        ]
        plan = CleanupService.plan(entries, RetentionSettings(keep_weekly=1))
        self.assertEqual(names(plan.keep), ["new.zip"])

    def test_keep_larger_than_buckets(self):
        entries = [entry("a.zip", datetime(2026, 10, 18))]
        plan = CleanupService.plan(entries, RetentionSettings(keep_weekly=10))
        self.assertEqual(names(plan.keep), ["a.zip"])
        self.assertEqual(plan.delete, [])


class TestCleanupService(unittest.TestCase):
    """Tests para la aplicación de la retención sobre disco y catálogo"""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.catalog = BackupCatalog(self.temp_dir / "backup-metadata.json")
        self.service = CleanupService(self.catalog)

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def make_backup(self, file_name, created, backup_type='weekly'):
        (self.temp_dir / file_name).write_bytes(b"PK")
        item = entry(file_name, created, backup_type, directory=self.temp_dir, size=2)
        self.catalog.append(item)
        return item

    def test_cleanup_removes_old_weeks(self):
        first_sunday = datetime(2026, 9, 27, 2, 0)
        for i in range(4):
            self.make_backup(f"weekly_{i}.zip", first_sunday + timedelta(weeks=i))

        plan = self.service.cleanup_now(RetentionSettings(keep_weekly=2))

        self.assertEqual(names(plan.delete), ["weekly_0.zip", "weekly_1.zip"])
        self.assertEqual(names(self.catalog.load()), ["weekly_2.zip", "weekly_3.zip"])
        self.assertFalse((self.temp_dir / "weekly_0.zip").exists())
        self.assertFalse((self.temp_dir / "weekly_1.zip").exists())
        self.assertTrue((self.temp_dir / "weekly_3.zip").exists())

    def test_missing_file_does_not_stop_cleanup(self):
        first_sunday = datetime(2026, 9, 27, 2, 0)
        items = [self.make_backup(f"weekly_{i}.zip", first_sunday + timedelta(weeks=i)) for i in range(3)]
        Path(items[0].file_path).unlink()

        plan = self.service.apply(self.catalog.load(), RetentionSettings(keep_weekly=1))

        self.assertEqual(len(plan.delete), 2)
        self.assertFalse((self.temp_dir / "weekly_1.zip").exists())
        self.assertEqual(names(self.catalog.load()), ["weekly_2.zip"])

    def test_cleanup_prunes_orphan_entries(self):
        kept = self.make_backup("manual.zip", datetime(2026, 10, 1), 'manual')
        orphan = self.make_backup("gone.zip", datetime(2026, 10, 2), 'manual')
        Path(orphan.file_path).unlink()

        self.service.cleanup_now(RetentionSettings())

        self.assertEqual(self.catalog.load(), [kept])

    def test_stats(self):
        self.make_backup("w.zip", datetime(2026, 10, 18), 'weekly')
        self.make_backup("m.zip", datetime(2026, 10, 1), 'monthly')
        self.make_backup("x.zip", datetime(2026, 10, 10), 'manual')

        stats = self.service.get_backup_stats()

        self.assertEqual(stats['total_backups'], 3)
        self.assertEqual(stats['weekly_backups'], 1)
        self.assertEqual(stats['monthly_backups'], 1)
        self.assertEqual(stats['manual_backups'], 1)
        self.assertEqual(stats['total_size'], 6)
        self.assertEqual(stats['oldest_backup'], datetime(2026, 10, 1))
        self.assertEqual(stats['newest_backup'], datetime(2026, 10, 18))


class TestBackupCatalog(unittest.TestCase):
    """Tests para el catálogo JSON"""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.catalog = BackupCatalog(self.temp_dir / "backup-metadata.json")

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_missing_file_is_empty(self):
        self.assertEqual(self.catalog.load(), [])

    def test_append_find_remove(self):
        item = entry("a.zip", datetime(2026, 10, 18, 2, 0), directory=self.temp_dir)
        self.catalog.append(item)

        self.assertEqual(self.catalog.load(), [item])
        self.assertEqual(self.catalog.find("a.zip"), item)
        self.assertEqual(self.catalog.remove("a.zip"), item)
        self.assertIsNone(self.catalog.remove("a.zip"))
        self.assertEqual(self.catalog.load(), [])

    def test_malformed_file_is_empty(self):
        self.catalog.catalog_file.write_text("{not json", encoding='utf-8')
        self.assertEqual(self.catalog.load(), [])

    def test_invalid_entries_are_skipped(self):
        good = entry("a.zip", datetime(2026, 10, 18), directory=self.temp_dir)
        self.catalog.save([good])
        raw = self.catalog.catalog_file.read_text(encoding='utf-8')
        self.catalog.catalog_file.write_text(raw.replace("[", '[{"fileName": "broken"},', 1), encoding='utf-8')

        self.assertEqual(self.catalog.load(), [good])

    def test_utc_timestamps_from_other_writers(self):
        # Otras herramientas guardan la hora en UTC con sufijo Z
        raw = [
            {"fileName": "old.zip", "filePath": str(self.temp_dir / "old.zip"),
             "created": "2026-10-11T02:00:00.000Z", "type": "weekly", "size": 1},
            {"fileName": "new.zip", "filePath": str(self.temp_dir / "new.zip"),
             "created": "2026-10-18T02:00:00", "type": "weekly", "size": 2},
        ]
        self.catalog.catalog_file.write_text(json.dumps(raw), encoding='utf-8')

        entries = self.catalog.load()
        self.assertEqual(names(entries), ["new.zip", "old.zip"])
        self.assertTrue(all(e.created.tzinfo is None for e in entries))

        stats = CleanupService(self.catalog).get_backup_stats()
        self.assertEqual(stats['total_backups'], 2)
        self.assertEqual(stats['newest_backup'], datetime(2026, 10, 18, 2, 0))

    def test_save_leaves_no_temp_file(self):
        self.catalog.save([entry("a.zip", datetime(2026, 10, 18))])
        self.assertEqual(sorted(p.name for p in self.temp_dir.iterdir()), ["backup-metadata.json"])

    def test_prune_missing(self):
        (self.temp_dir / "present.zip").write_bytes(b"PK")
        present = entry("present.zip", datetime(2026, 10, 18), directory=self.temp_dir)
        missing = entry("missing.zip", datetime(2026, 10, 11), directory=self.temp_dir)
        self.catalog.save([present, missing])

        removed = self.catalog.prune_missing()

        self.assertEqual(removed, [missing])
        self.assertEqual(self.catalog.load(), [present])


if __name__ == '__main__':
    unittest.main()
