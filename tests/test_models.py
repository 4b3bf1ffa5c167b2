"""
Tests de los modelos de datos
"""
import sys
import unittest
from datetime import datetime, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from dumpkeeper.models import (
    BackupMetadata, BackupOptions, BackupResult, BackupScheduleConfig, DatabaseConfig,
    RetentionSettings, month_bucket, parse_timestamp, sunday_weekday, week_bucket,
)


class TestDatabaseConfig(unittest.TestCase):
    """Tests para DatabaseConfig"""

    def test_valid_config(self):
        """Test de configuración válida"""
        config = DatabaseConfig(
            name="primary",
            host="localhost",
            port=5432,
            user="postgres",
            password="secret",
            database="app"
        )

        self.assertEqual(config.name, "primary")
        self.assertEqual(config.type, "postgresql")
        self.assertTrue(config.enabled)
        self.assertEqual(config.database_name, "app")

    def test_database_name_defaults_to_name(self):
        config = DatabaseConfig(name="reports", host="h", port=5432, user="u", password="p")
        self.assertEqual(config.database_name, "reports")

    def test_invalid_config_no_name(self):
        """Test de configuración sin nombre"""
        with self.assertRaises(ValueError):
            DatabaseConfig(name="", host="localhost", port=5432, user="u", password="p")


class TestBackupResult(unittest.TestCase):
    """Tests para BackupResult"""

    def test_ok_result(self):
        result = BackupResult.ok(Path("/tmp/x.zip"), "x.zip", 10, 1.5, databases=["alpha"])
        self.assertTrue(result.success)
        self.assertEqual(result.file_path, str(Path("/tmp/x.zip")))
        self.assertEqual(result.databases, ("alpha",))
        self.assertIsNone(result.error)

    def test_failure_result(self):
        result = BackupResult.failure("boom", "packaging")
        self.assertFalse(result.success)
        self.assertIsNone(result.file_path)
        self.assertEqual(result.error_stage, "packaging")
        self.assertIn("boom", str(result))

    def test_success_with_error_is_rejected(self):
        with self.assertRaises(ValueError):
            BackupResult(success=True, error="boom")

    def test_failure_with_output_is_rejected(self):
        with self.assertRaises(ValueError):
            BackupResult(success=False, file_path="/tmp/x.zip", error="boom")


class TestBackupOptions(unittest.TestCase):

    def test_schema_only_wins(self):
        self.assertFalse(BackupOptions(include_data=True, schema_only=True).emits_data)
        self.assertFalse(BackupOptions(include_data=False).emits_data)
        self.assertTrue(BackupOptions().emits_data)

    def test_empty_filters_mean_no_filter(self):
        options = BackupOptions(tables_to_include=[], tables_to_exclude=['logs', 'logs'])
        self.assertIsNone(options.tables_to_include)
        self.assertEqual(options.tables_to_exclude, frozenset({'logs'}))


class TestBuckets(unittest.TestCase):
    """Tests para las claves de semana y mes"""

    def test_week_one_contains_january_first(self):
        self.assertEqual(week_bucket(datetime(2026, 1, 1)), "2026-01")
        self.assertEqual(week_bucket(datetime(2026, 1, 3)), "2026-01")

    def test_weeks_start_on_sunday(self):
        self.assertEqual(week_bucket(datetime(2026, 1, 4)), "2026-02")
        self.assertEqual(week_bucket(datetime(2026, 10, 17, 23, 59)), "2026-42")
        self.assertEqual(week_bucket(datetime(2026, 10, 18, 0, 1)), "2026-43")

    def test_month_bucket(self):
        self.assertEqual(month_bucket(datetime(2026, 3, 9)), "2026-03")
        self.assertEqual(month_bucket(datetime(2026, 12, 31)), "2026-12")

    def test_sunday_weekday(self):
        self.assertEqual(sunday_weekday(datetime(2026, 10, 18)), 0)
        self.assertEqual(sunday_weekday(datetime(2026, 10, 17)), 6)


class TestBackupMetadata(unittest.TestCase):

    def test_create_from_result(self):
        result = BackupResult.ok("/b/weekly.zip", "weekly.zip", 2048, 3.0, databases=["alpha", "beta"])
        entry = BackupMetadata.create(result, "weekly", datetime(2026, 10, 18, 2, 0))

        self.assertEqual(entry.week, "2026-43")
        self.assertEqual(entry.month, "2026-10")
        self.assertEqual(entry.databases, ["alpha", "beta"])
        self.assertEqual(entry.size, 2048)

    def test_dict_uses_catalog_keys(self):
        entry = BackupMetadata(
            file_name="a.zip", file_path="/b/a.zip", created=datetime(2026, 10, 18, 2, 0),
            databases=["alpha"], backup_type="monthly", size=1, week="2026-43", month="2026-10"
        )
        data = entry.to_dict()
        self.assertEqual(
            set(data), {"fileName", "filePath", "created", "databases", "type", "size", "week", "month"}
        )
        self.assertEqual(BackupMetadata.from_dict(data), entry)

    def test_from_dict_fills_missing_buckets(self):
        entry = BackupMetadata.from_dict({
            "fileName": "a.zip", "filePath": "/b/a.zip", "created": "2026-01-04T10:00:00",
        })
        self.assertEqual(entry.backup_type, "manual")
        self.assertEqual(entry.week, "2026-02")
        self.assertEqual(entry.month, "2026-01")

    def test_from_dict_normalises_utc_to_local_naive(self):
        entry = BackupMetadata.from_dict({
            "fileName": "a.zip", "filePath": "/b/a.zip", "created": "2026-10-18T02:00:00.000Z",
        })
        expected = datetime(2026, 10, 18, 2, 0, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)

        self.assertIsNone(entry.created.tzinfo)
        self.assertEqual(entry.created, expected)
        self.assertEqual(parse_timestamp("2026-10-18T05:00:00+03:00"), expected)
        self.assertEqual(parse_timestamp("2026-10-18T02:00:00"), datetime(2026, 10, 18, 2, 0))
        # Se puede comparar con entradas naive sin TypeError
        self.assertEqual(len(sorted([entry.created, datetime(2026, 10, 11)])), 2)

    def test_invalid_type(self):
        with self.assertRaises(ValueError):
            BackupMetadata("a", "/a", datetime.now(), [], "hourly", 0, "2026-01", "2026-01")


class TestBackupScheduleConfig(unittest.TestCase):
    """Tests para la configuración de la programación"""

    def test_defaults(self):
        config = BackupScheduleConfig.from_dict({})
        self.assertTrue(config.enabled)
        self.assertEqual(config.frequency, "weekly")
        self.assertEqual(config.day_of_week, 0)
        self.assertEqual((config.hour, config.minute), (2, 0))
        self.assertEqual(config.databases, ("both",))
        self.assertEqual(config.retention, RetentionSettings(4, 3))

    def test_partial_update_merges_retention(self):
        config = BackupScheduleConfig.from_dict({"hour": 5, "retention": {"keepWeekly": 8}})
        self.assertEqual(config.hour, 5)
        self.assertEqual(config.retention.keep_weekly, 8)
        self.assertEqual(config.retention.keep_monthly, 3)

    def test_to_dict_round_trip(self):
        config = BackupScheduleConfig(frequency="monthly", hour=23, minute=30, databases=("primary",))
        self.assertEqual(BackupScheduleConfig.from_dict(config.to_dict()), config)

    def test_invalid_values(self):
        invalid = [
            {"frequency": "hourly"},
            {"dayOfWeek": 7},
            {"hour": 24},
            {"minute": -1},
            {"databases": []},
            {"databases": ["tertiary"]},
            {"retention": {"keepWeekly": 0}},
        ]
        for data in invalid:
            with self.subTest(data=data):
                with self.assertRaises(ValueError):
                    BackupScheduleConfig.from_dict(data)


if __name__ == '__main__':
    unittest.main()
