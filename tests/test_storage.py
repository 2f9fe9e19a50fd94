import json
import tempfile
import unittest
from datetime import date
from pathlib import Path

from acordos.promises import PromiseStore
from acordos.records import ClientRecord, PromisePayload
from acordos.storage import (
    MANUAL_CLIENTS_FILE,
    PROMISES_FILE,
    manual_clients_repository,
    promises_repository,
)


class ManualClientsRepositoryTests(unittest.TestCase):
    def test_missing_file_loads_empty_without_warning(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            repository = manual_clients_repository(Path(tmpdir))
            self.assertEqual(repository.load(), [])

    def test_save_and_load_round_trip_without_promise_overlay(self):
        record = ClientRecord(
            id="abc",
            national_id="111.222.333-44",
            name="Ana",
            amount=1234.56,
            due_date=date(2024, 3, 15),
            phone="11911111111",
            promise_date=date(2024, 3, 20),
            source="manual",
            created_at="2024-03-01T10:00:00Z",
        )
        with tempfile.TemporaryDirectory() as tmpdir:
            repository = manual_clients_repository(Path(tmpdir))
            repository.save([record])

            document = json.loads((Path(tmpdir) / MANUAL_CLIENTS_FILE).read_text(encoding="utf-8"))
            self.assertEqual(document[0]["due_date"], "2024-03-15")
            self.assertNotIn("promise_date", document[0])

            loaded = repository.load()
            self.assertEqual(loaded[0].name, "Ana")
            self.assertEqual(loaded[0].amount, 1234.56)
            self.assertEqual(loaded[0].due_date, date(2024, 3, 15))
            self.assertEqual(loaded[0].source, "manual")
            self.assertIsNone(loaded[0].promise_date)

    def test_corrupt_file_falls_back_to_empty_and_warns(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            (Path(tmpdir) / MANUAL_CLIENTS_FILE).write_text("{not json", encoding="utf-8")
            repository = manual_clients_repository(Path(tmpdir))
            with self.assertLogs("acordos.storage", level="WARNING") as logs:
                self.assertEqual(repository.load(), [])
            self.assertIn("unreadable state file", logs.output[0])

    def test_wrong_document_shape_falls_back_to_empty(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            (Path(tmpdir) / MANUAL_CLIENTS_FILE).write_text('{"id": "x"}', encoding="utf-8")
            repository = manual_clients_repository(Path(tmpdir))
            with self.assertLogs("acordos.storage", level="WARNING"):
                self.assertEqual(repository.load(), [])

    def test_save_leaves_no_temporary_files(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            state_dir = Path(tmpdir) / "nested" / "state"
            repository = manual_clients_repository(state_dir)
            repository.save([])
            repository.save([ClientRecord(id="1", name="Ana", source="manual")])
            self.assertEqual(sorted(path.name for path in state_dir.iterdir()), [MANUAL_CLIENTS_FILE])


class PromisesRepositoryTests(unittest.TestCase):
    def test_round_trip(self):
        store = PromiseStore({"id-digits:11122233344": PromisePayload(promise_date=date(2024, 3, 20), note="metade")})
        with tempfile.TemporaryDirectory() as tmpdir:
            repository = promises_repository(Path(tmpdir))
            repository.save(store)
            self.assertEqual(repository.load(), store)

    def test_accepts_utc_timestamps_written_by_older_clients(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            (Path(tmpdir) / PROMISES_FILE).write_text(
                json.dumps({"k": {"promise_date": "2024-03-20", "updated_at": "2024-03-15T12:00:00.000Z"}}),
                encoding="utf-8",
            )
            store = promises_repository(Path(tmpdir)).load()
            self.assertEqual(store.date_for("k"), date(2024, 3, 20))
            self.assertEqual(store.get("k").updated_at, "2024-03-15T12:00:00.000Z")

    def test_corrupt_file_falls_back_to_empty_store(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            (Path(tmpdir) / PROMISES_FILE).write_text("[1, 2", encoding="utf-8")
            with self.assertLogs("acordos.storage", level="WARNING"):
                store = promises_repository(Path(tmpdir)).load()
            self.assertEqual(len(store), 0)


if __name__ == "__main__":
    unittest.main()
