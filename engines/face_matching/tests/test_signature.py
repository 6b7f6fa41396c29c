"""
Tests for FaceSignature parsing.
"""

import json

import pytest

from engines.face_matching.signature import FaceSignature, parse_signature


class TestFaceSignature:
    def test_from_camel_case_box(self):
        s = FaceSignature.from_dict({'xMin': 10, 'yMin': 20, 'width': 100, 'height': 120, 'score': 0.9})
        assert s == FaceSignature(width=100, height=120, x_min=10, y_min=20)

    def test_from_snake_case(self):
        s = FaceSignature.from_dict({'x_min': 5, 'y_min': 6, 'width': 7, 'height': 8})
        assert (s.x_min, s.y_min) == (5, 6)

    def test_to_dict(self):
        d = FaceSignature(width=100, height=120, x_min=10, y_min=20).to_dict()
        assert d == {'xMin': 10, 'yMin': 20, 'width': 100, 'height': 120}

    def test_missing_dimensions(self):
        with pytest.raises(ValueError, match='width'):
            FaceSignature.from_dict({'xMin': 1})

    def test_non_positive_dimensions(self):
        with pytest.raises(ValueError, match='positive'):
            FaceSignature.from_dict({'width': 0, 'height': 10})


class TestParseSignature:
    def test_empty_values(self):
        assert parse_signature(None) is None
        assert parse_signature('') is None
        assert parse_signature({}) is None

    def test_json_string(self):
        raw = json.dumps({'width': 80, 'height': 90})
        assert parse_signature(raw) == FaceSignature(width=80, height=90)

    def test_passthrough(self):
        s = FaceSignature(width=1, height=2)
        assert parse_signature(s) is s
