import unittest
from datetime import date

from acordos.errors import ValidationError
from acordos.promises import (
    PromiseStore,
    PromiseView,
    build_payload,
    draft_for_client,
    filter_promises,
    listing,
    promise_counts,
    save_promise,
)
from acordos.records import ClientRecord, PromisePayload, PromiseSnapshot

TODAY = date(2024, 3, 15)


class PromiseStoreTests(unittest.TestCase):
    def test_upsert_get_remove(self):
        store = PromiseStore()
        payload = PromisePayload(promise_date=date(2024, 3, 20))
        store.upsert("id-digits:11122233344", payload)
        self.assertIn("id-digits:11122233344", store)
        self.assertEqual(store.get("id-digits:11122233344"), payload)
        self.assertEqual(store.date_for("id-digits:11122233344"), date(2024, 3, 20))
        self.assertTrue(store.remove("id-digits:11122233344"))
        self.assertFalse(store.remove("id-digits:11122233344"))
        self.assertIsNone(store.get("id-digits:11122233344"))
        self.assertIsNone(store.get(""))

    def test_empty_key_is_rejected(self):
        with self.assertRaises(ValueError):
            PromiseStore().upsert("", PromisePayload(promise_date=TODAY))

    def test_dict_round_trip(self):
        store = PromiseStore()
        store.upsert(
            "phone-digits:11911111111",
            PromisePayload(
                promise_date=date(2024, 3, 20),
                updated_at="2024-03-15T12:00:00Z",
                note="metade",
                snapshot=PromiseSnapshot(name="Ana", phone="11911111111", amount=150.5),
            ),
        )
        document = store.to_dict()
        self.assertEqual(document["phone-digits:11911111111"]["promise_date"], "2024-03-20")
        self.assertEqual(PromiseStore.from_dict(document), store)

    def test_from_dict_skips_malformed_entries(self):
        with self.assertLogs("acordos.promises", level="WARNING"):
            store = PromiseStore.from_dict({"ok": {"promise_date": "2024-03-20"}, "bad": "2024-03-20"})
        self.assertEqual(list(store), ["ok"])
        self.assertEqual(len(PromiseStore.from_dict(["not", "a", "dict"])), 0)

    def test_stored_timestamps_are_read_as_days(self):
        store = PromiseStore.from_dict({"k": {"promise_date": "2024-03-20T12:00:00"}})
        self.assertEqual(store.date_for("k"), date(2024, 3, 20))


class PromiseFormTests(unittest.TestCase):
    def test_payload_requires_a_date(self):
        with self.assertRaisesRegex(ValidationError, "promise date"):
            build_payload(promise_date=None, name="Ana")

    def test_payload_trims_and_parses_the_snapshot(self):
        payload = build_payload(
            promise_date=date(2024, 3, 20),
            note="  pagar metade  ",
            name=" Ana ",
            phone=" 11911111111 ",
            amount="1.234,56",
            updated_at="2024-03-15T12:00:00Z",
        )
        self.assertEqual(payload.note, "pagar metade")
        self.assertEqual(payload.snapshot.name, "Ana")
        self.assertEqual(payload.snapshot.phone, "11911111111")
        self.assertEqual(payload.snapshot.amount, 1234.56)
        self.assertEqual(payload.updated_at, "2024-03-15T12:00:00Z")

    def test_payload_stamps_updated_at(self):
        payload = build_payload(promise_date=TODAY)
        self.assertTrue(payload.updated_at.endswith("Z"))

    def test_save_requires_some_identity(self):
        with self.assertRaisesRegex(ValidationError, "name and phone"):
            save_promise(PromiseStore(), promise_date=TODAY, note="x")

    def test_save_uses_the_identity_key(self):
        store = PromiseStore()
        key = save_promise(store, promise_date=TODAY, national_id="111.222.333-44", name="Ana")
        self.assertEqual(key, "id-digits:11122233344")
        self.assertEqual(store.date_for(key), TODAY)

    def test_save_without_qualifying_identity_uses_a_custom_key(self):
        store = PromiseStore()
        key = save_promise(store, promise_date=TODAY, name="Sem telefone")
        self.assertTrue(key.startswith("custom:"))

    def test_save_with_explicit_key_overwrites(self):
        store = PromiseStore()
        key = save_promise(store, promise_date=TODAY, phone="11911111111")
        save_promise(store, key=key, promise_date=date(2024, 3, 22))
        self.assertEqual(len(store), 1)
        self.assertEqual(store.date_for(key), date(2024, 3, 22))

    def test_draft_prefers_live_record_and_falls_back_to_snapshot(self):
        store = PromiseStore()
        key = save_promise(
            store,
            promise_date=date(2024, 3, 20),
            national_id="111.222.333-44",
            name="Ana antiga",
            phone="11900000000",
            amount="500",
            note="ligar",
        )
        record = ClientRecord(id="1", national_id="11122233344", name="Ana Souza")
        draft = draft_for_client(record, store)
        self.assertEqual(draft.key, key)
        self.assertEqual(draft.name, "Ana Souza")
        self.assertEqual(draft.phone, "11900000000")
        self.assertEqual(draft.amount, 500.0)
        self.assertEqual(draft.promise_date, date(2024, 3, 20))
        self.assertEqual(draft.note, "ligar")

    def test_draft_for_record_without_identity_gets_a_fresh_key(self):
        draft = draft_for_client(ClientRecord(id="1", name="Ana", amount=10), PromiseStore())
        self.assertTrue(draft.key.startswith("custom:"))
        self.assertIsNone(draft.promise_date)
        self.assertEqual(draft.amount, 10)


class PromiseListingTests(unittest.TestCase):
    def setUp(self):
        self.store = PromiseStore(
            {
                "d": PromisePayload(promise_date=date(2024, 3, 23)),
                "a": PromisePayload(promise_date=date(2024, 3, 14)),
                "c": PromisePayload(promise_date=date(2024, 3, 22)),
                "b": PromisePayload(promise_date=date(2024, 3, 15)),
                "undated": PromisePayload(promise_date=None),
            }
        )

    def test_listing_is_sorted_by_date_and_skips_undated(self):
        self.assertEqual([entry.key for entry in listing(self.store)], ["a", "b", "c", "d"])

    def test_views(self):
        entries = listing(self.store)
        keys = lambda view: [entry.key for entry in filter_promises(entries, view, TODAY)]
        self.assertEqual(keys(PromiseView.ALL), ["a", "b", "c", "d"])
        self.assertEqual(keys(PromiseView.TODAY), ["b"])
        self.assertEqual(keys(PromiseView.EXPIRED), ["a"])
        self.assertEqual(keys(PromiseView.NEXT_7), ["b", "c"])

    def test_counts(self):
        self.assertEqual(
            promise_counts(listing(self.store), TODAY),
            {"total": 4, "today": 1, "expired": 1, "next_7": 2},
        )


if __name__ == "__main__":
    unittest.main()
