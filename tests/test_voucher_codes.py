import unittest
from datetime import datetime, timezone

from voucher_engine.services.voucher_codes import (
    CODE_ALPHABET,
    VOUCHER_CODE_RE,
    generate_voucher_code,
    is_well_formed,
    mask_voucher_code,
    normalize_voucher_code,
)


class TestVoucherCodes(unittest.TestCase):
    def test_format_uses_current_year(self):
        code = generate_voucher_code(datetime(2031, 2, 3, tzinfo=timezone.utc))
        self.assertRegex(code, VOUCHER_CODE_RE)
        self.assertTrue(code.startswith("EXP-2031-"))

    def test_suffix_alphabet(self):
        for _ in range(50):
            suffix = generate_voucher_code().split("-")[-1]
            self.assertEqual(len(suffix), 8)
            self.assertTrue(set(suffix) <= set(CODE_ALPHABET))

    def test_codes_differ(self):
        codes = {generate_voucher_code() for _ in range(200)}
        self.assertGreater(len(codes), 195)

    def test_normalize(self):
        self.assertEqual(normalize_voucher_code("  exp-2025-ab12cd34 "), "EXP-2025-AB12CD34")
        self.assertEqual(normalize_voucher_code(None), "")

    def test_well_formed(self):
        self.assertTrue(is_well_formed("exp-2025-ab12cd34"))
        self.assertFalse(is_well_formed("EXP-25-AB12CD34"))
        self.assertFalse(is_well_formed("EXP-2025-AB12CD3"))

    def test_mask_hides_tail(self):
        self.assertEqual(mask_voucher_code("EXP-2025-AB12CD34"), "EXP-2025-AB12****")


if __name__ == "__main__":
    unittest.main()
