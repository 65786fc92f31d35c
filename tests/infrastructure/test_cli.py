"""Tests for the click CLI.

Cart commands run against JSON files in a temporary data directory.
Checkout commands run against an orchestrator wired to in-memory fakes.
"""

from contextlib import asynccontextmanager

import httpx
import pytest
from click.testing import CliRunner

from checkout.domain.model.payment import PaymentStatus
from checkout.infrastructure.cli import checkout_commands
from checkout.infrastructure.cli.main import cli
from checkout.infrastructure.http.backend_client import BackendClient
from tests.fakes import PIX_ARTIFACT, CheckoutHarness


@pytest.fixture
def runner(tmp_path, monkeypatch):
    monkeypatch.setenv("CHECKOUT_DATA_DIR", str(tmp_path))
    return CliRunner()


def _use_harness(monkeypatch, harness: CheckoutHarness) -> None:
    @asynccontextmanager
    async def session(user_id, settings=None):
        try:
            yield harness.checkout
        finally:
            await harness.checkout.close()

    monkeypatch.setattr(checkout_commands, "checkout_session", session)


# ── Cart ─────────────────────────────────────────────────────────────────────


class TestCartCommands:

    def test_empty_cart(self, runner):
        result = runner.invoke(cli, ["cart", "show"])
        assert result.exit_code == 0
        assert "Cart is empty." in result.output

    def test_add_and_show(self, runner):
        result = runner.invoke(
            cli, ["cart", "add", "--product", "1", "--name", "Vestido", "--qty", "2", "--price", "49.90"]
        )
        assert result.exit_code == 0
        assert "Added 2 x 'Vestido' to the cart." in result.output

        result = runner.invoke(cli, ["cart", "show"])
        assert "R$ 99.80" in result.output

    def test_invalid_price(self, runner):
        result = runner.invoke(
            cli, ["cart", "add", "--product", "1", "--name", "Vestido", "--price", "abc"]
        )
        assert result.exit_code == 1
        assert "Invalid money amount" in result.output

    def test_update_to_zero_removes_line(self, runner):
        runner.invoke(cli, ["cart", "add", "--product", "1", "--name", "Vestido", "--price", "10"])
        result = runner.invoke(cli, ["cart", "update", "--product", "1", "--qty", "0"])
        assert "Cart is empty." in result.output

    def test_clear(self, runner):
        runner.invoke(cli, ["cart", "add", "--product", "1", "--name", "Vestido", "--price", "10"])
        result = runner.invoke(cli, ["cart", "clear"])
        assert "Cart cleared." in result.output
        assert "Cart is empty." in runner.invoke(cli, ["cart", "show"]).output


# ── Checkout ─────────────────────────────────────────────────────────────────


class TestPayCommand:

    def test_bank_slip(self, runner, monkeypatch):
        harness = CheckoutHarness()
        _use_harness(monkeypatch, harness)
        result = runner.invoke(cli, ["pay", "--user", "1", "--method", "boleto"])
        assert result.exit_code == 0, result.output
        assert "State:    bank_slip_issued" in result.output
        assert "Bank slip: https://boleto.example.com/1" in result.output
        assert "R$ 115.00" in result.output

    def test_instant_transfer_without_waiting(self, runner, monkeypatch):
        harness = CheckoutHarness()
        _use_harness(monkeypatch, harness)
        result = runner.invoke(
            cli, ["pay", "--user", "1", "--method", "pix", "--shipping", "pac", "--no-wait"]
        )
        assert result.exit_code == 0, result.output
        assert f"PIX code: {PIX_ARTIFACT.pay_code}" in result.output
        assert "Expires:  5 min 0 seg" in result.output
        assert harness.pending.handle is not None

    def test_coupon_applied(self, runner, monkeypatch):
        _use_harness(monkeypatch, CheckoutHarness())
        result = runner.invoke(cli, ["pay", "--user", "1", "--method", "boleto", "--coupon", "save10"])
        assert "Coupon SAVE10" in result.output
        assert "R$ 105.00" in result.output

    def test_card_requires_every_card_option(self, runner, monkeypatch):
        _use_harness(monkeypatch, CheckoutHarness())
        result = runner.invoke(cli, ["pay", "--user", "1", "--method", "credit_card"])
        assert result.exit_code == 2
        assert "every --card-* option" in result.output

    def test_card_shows_installment_plan(self, runner, monkeypatch):
        _use_harness(monkeypatch, CheckoutHarness())
        result = runner.invoke(cli, [
            "pay", "--user", "1", "--method", "credit_card", "--installments", "3",
            "--card-number", "4111111111111111", "--card-expiry", "12/30",
            "--card-cvc", "123", "--card-holder", "MARIA SILVA", "--card-tax-id", "123.456.789-09",
        ])
        assert result.exit_code == 0, result.output
        assert "State:    confirmed" in result.output
        assert "3 x R$" in result.output
        assert "* sedex" in result.output

    def test_expired_card_rejected(self, runner, monkeypatch):
        harness = CheckoutHarness()
        _use_harness(monkeypatch, harness)
        result = runner.invoke(cli, [
            "pay", "--user", "1", "--method", "credit_card",
            "--card-number", "4111111111111111", "--card-expiry", "01/26",
            "--card-cvc", "123", "--card-holder", "MARIA SILVA", "--card-tax-id", "123.456.789-09",
        ])
        assert result.exit_code == 1
        assert "expiry" in result.output
        assert harness.orders.calls == 0

    def test_no_saved_address(self, runner, monkeypatch):
        _use_harness(monkeypatch, CheckoutHarness(addresses=[]))
        result = runner.invoke(cli, ["pay", "--user", "1", "--method", "boleto"])
        assert result.exit_code == 1
        assert "No saved delivery address" in result.output


class TestResumeCommand:

    def test_nothing_in_flight(self, runner, monkeypatch):
        _use_harness(monkeypatch, CheckoutHarness())
        result = runner.invoke(cli, ["resume", "--user", "1"])
        assert result.exit_code == 0
        assert "No payment in flight." in result.output


class TestStatusCommand:

    def test_shows_payment(self, runner, monkeypatch):
        def handler(request):
            return httpx.Response(200, json={
                "id": 5, "orderId": 12, "method": "credit_card", "amount": "115.00",
                "status": "rejected", "statusDetail": "cc_rejected_high_risk",
            })

        monkeypatch.setattr(
            checkout_commands,
            "backend_client",
            lambda: BackendClient("https://shop.example.com/api", transport=httpx.MockTransport(handler)),
        )
        result = runner.invoke(cli, ["status", "--payment-id", "5"])
        assert result.exit_code == 0, result.output
        assert "Payment #5  (order #12)" in result.output
        assert f"Status:  {PaymentStatus.REJECTED.value}" in result.output
        assert "Detail:  cc_rejected_high_risk" in result.output

    def test_unknown_payment(self, runner, monkeypatch):
        monkeypatch.setattr(
            checkout_commands,
            "backend_client",
            lambda: BackendClient(
                "https://shop.example.com/api",
                transport=httpx.MockTransport(lambda request: httpx.Response(404, json={"error": "not found"})),
            ),
        )
        result = runner.invoke(cli, ["status", "--payment-id", "99"])
        assert result.exit_code == 1
        assert "not found" in result.output
