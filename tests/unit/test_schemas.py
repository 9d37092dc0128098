"""
Unit tests for filing schemas.
"""
from decimal import Decimal

import pytest

from filingdesk.exceptions import ValidationError
from filingdesk.schemas.filing import FilingCreate, FilingDocument, FilingUpdate, validate_document


def document(**overrides) -> dict:
    data = {
        "shipment_id": "SHP1",
        "invoice_no": "INV1",
        "port": "MUM",
        "declared_value": "100",
        "status": "Submitted",
        "items": [{"description": "Widget", "quantity": 2, "price": "25"}],
    }
    data.update(overrides)
    return data


class TestFilingDocument:
    """Tests for document validation."""

    def test_valid_document(self):
        doc = validate_document(document())

        assert doc.declared_value == Decimal("100")
        assert doc.items[0].price == Decimal("25")

    def test_value_alias(self):
        """Test the declared value may be supplied as 'value'."""
        data = document()
        data["value"] = data.pop("declared_value")

        assert validate_document(data, FilingCreate).declared_value == Decimal("100")

    def test_strips_whitespace(self):
        assert validate_document(document(port="  MUM  ")).port == "MUM"

    @pytest.mark.parametrize("overrides, field", [
        ({"items": []}, "items"),
        ({"shipment_id": "   "}, "shipment_id"),
        ({"declared_value": "-1"}, "declared_value"),
        ({"items": [{"description": "Widget", "quantity": 0, "price": "1"}]}, "items.0.quantity"),
        ({"items": [{"description": "Widget", "quantity": 1, "price": "-0.01"}]}, "items.0.price"),
        ({"items": [{"description": "", "quantity": 1, "price": "1"}]}, "items.0.description"),
        ({"status": ""}, "status"),
        ({"declared_value": "100.123456"}, "declared_value"),
        ({"items": [{"description": "Widget", "quantity": 1, "price": "0.33335"}]}, "items.0.price"),
    ])
    def test_invalid_fields(self, overrides, field):
        """Test violations are reported with the offending field."""
        with pytest.raises(ValidationError) as exc_info:
            validate_document(document(**overrides))

        assert field in [error["field"] for error in exc_info.value.errors]

    def test_missing_field(self):
        data = document()
        del data["port"]

        with pytest.raises(ValidationError):
            validate_document(data, FilingDocument)


class TestFilingUpdate:
    """Tests for update patches."""

    def test_all_fields_optional(self):
        patch = validate_document({}, FilingUpdate)

        assert patch.model_dump(exclude_unset=True) == {}

    def test_accepts_submission_date(self):
        patch = validate_document({"submission_date": "2020-01-01T00:00:00"}, FilingUpdate)

        assert "submission_date" in patch.model_dump(exclude_unset=True)

    def test_declared_value_precision_limited(self):
        """Test a patch cannot carry more decimal places than the store keeps."""
        with pytest.raises(ValidationError) as exc_info:
            validate_document({"value": "10.00001"}, FilingUpdate)

        assert exc_info.value.errors[0]["field"] in ("value", "declared_value")

    def test_four_decimal_places_accepted(self):
        patch = validate_document({"declared_value": "10.1234"}, FilingUpdate)

        assert patch.declared_value == Decimal("10.1234")
