"""Tests for product and supplier code generation."""

import random
import re

from app.core.codes import (
    CODE_ALPHABET,
    generate_product_code,
    generate_supplier_code,
    name_prefix,
    random_suffix,
)

CODE_PATTERN = re.compile(r"^[A-Z]{1,4}-(PROD|SUPP)-[A-Z0-9]{6}$")


class TestNamePrefix:
    def test_initials_of_words(self):
        assert name_prefix("Linear Pendant Lamp") == "LPL"

    def test_limited_to_four_letters(self):
        assert name_prefix("one two three four five six") == "OTTF"

    def test_non_letters_are_removed(self):
        assert name_prefix("3D-Printed 2024 Lamp!") == "DL"

    def test_corporate_suffixes_stripped_when_requested(self):
        assert name_prefix("Zumtobel Lighting Inc", strip_suffixes=True) == "ZL"
        assert name_prefix("Acme Corp Ltd", strip_suffixes=True) == "A"
        assert name_prefix("Zumtobel Lighting Inc") == "ZLI"

    def test_empty_when_no_letters(self):
        assert name_prefix("1234 !!") == ""


class TestRandomSuffix:
    def test_length_and_alphabet(self):
        suffix = random_suffix()
        assert len(suffix) == 6
        assert all(c in CODE_ALPHABET for c in suffix)

    def test_injected_rng_is_deterministic(self):
        assert random_suffix(rng=random.Random(7)) == random_suffix(rng=random.Random(7))


class TestGenerateCodes:
    def test_supplier_code_for_zumtobel(self):
        code = generate_supplier_code("Zumtobel Lighting Inc")
        assert CODE_PATTERN.match(code)
        assert code.startswith("ZL-SUPP-")

    def test_supplier_code_fallback_prefix(self):
        assert generate_supplier_code("Inc").startswith("COMP-SUPP-")
        assert generate_supplier_code("").startswith("COMP-SUPP-")

    def test_product_code(self):
        code = generate_product_code("Downlight Pro")
        assert CODE_PATTERN.match(code)
        assert code.startswith("DP-PROD-")

    def test_product_code_fallback_prefix(self):
        code = generate_product_code("42")
        assert code.startswith("PROD-PROD-")
        assert CODE_PATTERN.match(code)
