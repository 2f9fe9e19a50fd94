import unittest
from datetime import date

from acordos.errors import InvalidPhoneError
from acordos.messaging import (
    due_reminder,
    due_reminder_link,
    format_brl,
    promise_reminder,
    promise_reminder_link,
    whatsapp_link,
)
from acordos.records import ClientRecord, PromisePayload, PromiseSnapshot


class WhatsappLinkTests(unittest.TestCase):
    def test_country_prefix_is_added_and_message_encoded(self):
        self.assertEqual(
            whatsapp_link("(11) 98765-4321", "Olá, tudo bem?"),
            "https://wa.me/5511987654321?text=Ol%C3%A1%2C%20tudo%20bem%3F",
        )

    def test_existing_prefix_is_kept(self):
        self.assertTrue(whatsapp_link("+55 11 98765-4321", "oi").startswith("https://wa.me/5511987654321?"))

    def test_short_numbers_are_rejected(self):
        with self.assertRaises(InvalidPhoneError):
            whatsapp_link("98765-432", "oi")
        with self.assertRaises(InvalidPhoneError):
            whatsapp_link("", "oi")

    def test_invalid_phone_is_a_value_error(self):
        self.assertTrue(issubclass(InvalidPhoneError, ValueError))


class CurrencyTests(unittest.TestCase):
    def test_formatting(self):
        self.assertEqual(format_brl(1234.5), "R$ 1.234,50")
        self.assertEqual(format_brl(1500), "R$ 1.500,00")
        self.assertEqual(format_brl("1.234,56"), "R$ 1.234,56")
        self.assertEqual(format_brl(0.99), "R$ 0,99")
        self.assertEqual(format_brl(-10), "-R$ 10,00")

    def test_blank_and_text_pass_through(self):
        self.assertEqual(format_brl(""), "")
        self.assertEqual(format_brl(None), "")
        self.assertEqual(format_brl(" a combinar "), "a combinar")


class ReminderTests(unittest.TestCase):
    def test_due_reminder(self):
        record = ClientRecord(id="1", name="Maria", amount=1500, due_date=date(2024, 3, 15), phone="11987654321")
        self.assertEqual(
            due_reminder(record),
            "Olá, Maria. Passando para confirmar o pagamento do acordo com vencimento 15/03/2024. "
            "Valor: R$ 1.500,00. Assim que efetuar, me envie o comprovante para anexarmos.",
        )
        self.assertTrue(due_reminder_link(record).startswith("https://wa.me/5511987654321?text=Ol%C3%A1%2C%20Maria."))

    def test_due_reminder_without_date_says_today(self):
        record = ClientRecord(id="1", name="Maria")
        self.assertIn("com vencimento hoje.", due_reminder(record))

    def test_promise_reminder_with_and_without_note(self):
        payload = PromisePayload(
            promise_date=date(2024, 3, 20),
            note="metade agora",
            snapshot=PromiseSnapshot(name="João", phone="21977770000", amount=200),
        )
        self.assertEqual(
            promise_reminder(payload),
            "Olá, João. Passando para confirmar a promessa de pagamento prevista para 20/03/2024. "
            "Valor: R$ 200,00. Obs: metade agora. Se já pagou, me envie o comprovante, por favor.",
        )
        bare = PromisePayload(promise_date=date(2024, 3, 20))
        self.assertEqual(
            promise_reminder(bare),
            "Olá, -. Passando para confirmar a promessa de pagamento prevista para 20/03/2024. "
            "Valor: . Se já pagou, me envie o comprovante, por favor.",
        )
        self.assertTrue(promise_reminder_link(payload).startswith("https://wa.me/5521977770000?text="))
        with self.assertRaises(InvalidPhoneError):
            promise_reminder_link(bare)


if __name__ == "__main__":
    unittest.main()
