"""Tests for short code generation."""

import re

import pytest

from shortlinks.services.codegen import CodeGenerator


@pytest.mark.service
class TestCodeGenerator:

    def test_default_code_is_eight_lowercase_hex_chars(self):
        code = CodeGenerator().generate()

        assert re.fullmatch(r"[0-9a-f]{8}", code)

    def test_byte_count_controls_length(self):
        assert len(CodeGenerator(num_bytes=6).generate()) == 12

    def test_codes_vary(self):
        generator = CodeGenerator()
        codes = {generator.generate() for _ in range(50)}

        assert len(codes) > 1
