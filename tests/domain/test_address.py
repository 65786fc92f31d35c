"""Unit tests for Address creation and selection."""

import pytest

from checkout.domain.exceptions import ValidationError
from checkout.domain.model.address import Address, ensure_single_default, select_initial
from tests.fakes import address_form, make_address


class TestAddressCreate:

    def test_normalizes_fields(self):
        address = Address.create(address_form())
        assert address.state == "SP"
        assert address.postal_code.digits == "01305000"
        assert address.id is None

    def test_reports_every_missing_field(self):
        with pytest.raises(ValidationError) as exc_info:
            Address.create(address_form(street="", phone="  ", city=None))
        assert set(exc_info.value.field_errors) == {"street", "phone", "city"}

    def test_invalid_postal_code(self):
        with pytest.raises(ValidationError) as exc_info:
            Address.create(address_form(postal_code="0130-50"))
        assert exc_info.value.field_errors == {"postal_code": "must contain exactly 8 digits"}

    def test_as_line_with_complement(self):
        line = Address.create(address_form()).as_line()
        assert line == (
            "Rua Augusta, 500 - apto 12, Consolação, São Paulo, SP - CEP: 01305000"
        )

    def test_as_line_without_complement(self):
        line = Address.create(address_form(complement="")).as_line()
        assert line.startswith("Rua Augusta, 500, Consolação")


class TestAddressSelection:

    def test_default_wins(self):
        first = make_address(id=1, is_default=False)
        default = make_address(id=2, is_default=True)
        assert select_initial([first, default]) is default

    def test_first_when_no_default(self):
        first = make_address(id=1, is_default=False)
        assert select_initial([first, make_address(id=2, is_default=False)]) is first

    def test_none_when_empty(self):
        assert select_initial([]) is None

    def test_only_one_default_kept(self):
        result = ensure_single_default([make_address(id=1), make_address(id=2)])
        assert [a.is_default for a in result] == [True, False]
