import unittest

from acordos.header_detection import (
    FIELD_RULES,
    LabelRule,
    detect_header_row,
    header_keys,
    looks_like_name_label,
    looks_like_national_id_label,
    map_columns,
)

STANDARD_HEADER = ["CPF", "Nome", "Valor", "Vencimento", "Telefone", "Tipo de negociação", "Status", "Obs"]


class HeaderRowDetectionTests(unittest.TestCase):
    def test_banner_rows_above_the_table_are_skipped(self):
        rows = [
            ["Relatório de acordos - março"],
            [],
            ["Gerado em", "15/03/2024", ""],
            ["CPF/CNPJ", "Nome do Cliente", "Dt. Venc.", "Valor", "Telefone", "Situação"],
            ["123.456.789-00", "Ana", "15/03/2024", 100, "11999999999", ""],
        ]
        self.assertEqual(detect_header_row(rows), 3)

    def test_national_id_and_name_labels_beat_an_earlier_filled_row(self):
        rows = [
            ["a", "b", "c", "d"],
            ["Documento", "Cliente", "Valor"],
        ]
        self.assertEqual(detect_header_row(rows), 1)

    def test_falls_back_to_first_row_with_three_filled_cells(self):
        rows = [
            ["Planilha"],
            ["", "x", ""],
            ["Codigo", "Descricao", "Quantidade"],
            ["1", "Item", "3"],
        ]
        self.assertEqual(detect_header_row(rows), 2)

    def test_defaults_to_zero_when_nothing_qualifies(self):
        self.assertEqual(detect_header_row([["só"], ["uma", "coluna"]]), 0)
        self.assertEqual(detect_header_row([]), 0)

    def test_rows_past_the_scan_window_are_ignored(self):
        rows = [["linha"] for _ in range(30)] + [["CPF", "Nome"]]
        self.assertEqual(detect_header_row(rows), 0)

    def test_label_predicates_ignore_case_and_accents(self):
        self.assertTrue(looks_like_national_id_label("  CPF / CNPJ "))
        self.assertTrue(looks_like_national_id_label("Nº Documento"))
        self.assertTrue(looks_like_name_label("NOME COMPLETO"))
        self.assertTrue(looks_like_name_label("Cliente"))
        self.assertFalse(looks_like_name_label("Telefone"))
        self.assertFalse(looks_like_national_id_label(None))


class ColumnMappingTests(unittest.TestCase):
    def test_standard_header_maps_every_field(self):
        mapping = map_columns(STANDARD_HEADER)
        self.assertEqual(
            mapping.resolved(),
            {
                "national_id": "CPF",
                "name": "Nome",
                "amount": "Valor",
                "due_date": "Vencimento",
                "phone": "Telefone",
                "negotiation_type": "Tipo de negociação",
                "status": "Status",
                "notes": "Obs",
            },
        )
        self.assertEqual(mapping.missing(), [])

    def test_abbreviated_labels_are_recognised(self):
        mapping = map_columns(["CPF/CNPJ", "Cliente", "Vlr", "Dt. Venc.", "Whatsapp", "Modalidade", "Situação", "Observação"])
        self.assertEqual(mapping.column_for("amount"), "Vlr")
        self.assertEqual(mapping.column_for("due_date"), "Dt. Venc.")
        self.assertEqual(mapping.column_for("phone"), "Whatsapp")
        self.assertEqual(mapping.column_for("negotiation_type"), "Modalidade")
        self.assertEqual(mapping.column_for("status"), "Situação")
        self.assertEqual(mapping.column_for("notes"), "Observação")

    def test_exact_data_label_is_a_due_date(self):
        mapping = map_columns(["Nome", "Data"])
        self.assertEqual(mapping.column_for("due_date"), "Data")

    def test_first_matching_column_wins(self):
        mapping = map_columns(["Nome", "Nome da mãe", "Telefone", "Celular"])
        self.assertEqual(mapping.column_for("name"), "Nome")
        self.assertEqual(mapping.column_for("phone"), "Telefone")

    def test_unmatched_fields_are_reported_missing(self):
        mapping = map_columns(["Nome", "Telefone"])
        self.assertIsNone(mapping.column_for("national_id"))
        self.assertIn("national_id", mapping.missing())
        self.assertIn("due_date", mapping.missing())

    def test_rule_table_can_be_extended(self):
        rules = FIELD_RULES + (("notes", LabelRule(contains=("remarks",))),)
        mapping = map_columns(["Nome", "Remarks"], rules=rules)
        self.assertEqual(mapping.column_for("notes"), "Remarks")

    def test_earlier_rule_keeps_its_match_over_an_extension(self):
        rules = FIELD_RULES + (("notes", LabelRule(contains=("remarks",))),)
        mapping = map_columns(["Nome", "Obs", "Remarks"], rules=rules)
        self.assertEqual(mapping.column_for("notes"), "Obs")
        mapping = map_columns(["Nome", "Remarks", "Obs"], rules=rules)
        self.assertEqual(mapping.column_for("notes"), "Obs")


class HeaderKeysTests(unittest.TestCase):
    def test_blank_and_repeated_headers_get_unique_keys(self):
        keys = header_keys(["CPF", "", "Nome", "Nome", None, "Nome"])
        self.assertEqual(keys, ["CPF", "__EMPTY", "Nome", "Nome_1", "__EMPTY_1", "Nome_2"])


if __name__ == "__main__":
    unittest.main()
