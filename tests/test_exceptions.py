"""
Tests for the typed error hierarchy.
"""

from __future__ import annotations

import pytest

from imagetools.exceptions import (OPERATION_ERRORS, ImageToolsError, InvalidColor,
                                   OperationError, ValueTooBig, error_from_key)


class TestOperationError:
    def test_key_and_params(self):
        err = ValueTooBig(10, 5)
        assert err.key == "value-too-big"
        assert err.params == [10, 5]
        assert err.i18n_path == "image-tools.errors.value-too-big"

    def test_family(self):
        assert issubclass(InvalidColor, OperationError)
        assert issubclass(OperationError, ImageToolsError)

    def test_equality(self):
        assert InvalidColor("x") == InvalidColor("x")
        assert InvalidColor("x") != InvalidColor("y")

    def test_custom_key(self):
        assert OperationError(key="custom").i18n_path == "image-tools.errors.custom"

    def test_registry_complete(self):
        assert len(OPERATION_ERRORS) == 16
        assert all(cls.key == key for key, cls in OPERATION_ERRORS.items())


class TestErrorFromKey:
    def test_known(self):
        err = error_from_key("value-too-big", [3, 2])
        assert isinstance(err, ValueTooBig)
        assert err.params == [3, 2]

    def test_unknown(self):
        err = error_from_key("mystery", ["a"])
        assert type(err) is OperationError
        assert err.key == "mystery"

    def test_raisable(self):
        with pytest.raises(ValueTooBig):
            raise error_from_key("value-too-big")
