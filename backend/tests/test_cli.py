"""
Flask CLI command tests (run through app.test_cli_runner()).
"""

from printpos.extensions import LEDGER_STORE_KEY
from printpos.services import sales_service
from printpos.services.sales_service import CartLine
from printpos.store import PRODUCTS


class TestSystemCommands:

    def test_init_is_idempotent(self, app):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["system", "init"])
        assert result.exit_code == 0, result.output
        assert "Catalog already populated" in result.output
        assert "Using existing shop profile" in result.output

    def test_reset_db_without_seed(self, app):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["system", "reset-db", "--yes", "--no-seed"])
        assert result.exit_code == 0, result.output
        assert app.extensions[LEDGER_STORE_KEY].list_all(PRODUCTS) == []

        result = runner.invoke(args=["system", "init"])
        assert "Seeded 6 starter products" in result.output

    def test_reset_db_requires_confirmation(self, app):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["system", "reset-db"], input="n\n")
        assert result.exit_code != 0
        assert len(app.extensions[LEDGER_STORE_KEY].list_all(PRODUCTS)) == 6

    def test_hash_passcode(self, app):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["system", "hash-passcode", "--passcode", "2580"])
        assert result.exit_code == 0, result.output
        assert result.output.strip().startswith("$2b$12$")

    def test_hash_passcode_too_short(self, app):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["system", "hash-passcode", "--passcode", "12"])
        assert result.exit_code != 0
        assert "at least 4 characters" in result.output


class TestInspectionCommands:

    def test_products_list(self, app):
        result = app.test_cli_runner().invoke(args=["products", "list"])
        assert result.exit_code == 0, result.output
        assert "Mug Printing" in result.output
        assert "6 product(s)" in result.output

    def test_credit_outstanding(self, app):
        runner = app.test_cli_runner()
        assert "No outstanding credit." in runner.invoke(args=["credit", "outstanding"]).output

        sales_service.checkout(
            app.extensions[LEDGER_STORE_KEY],
            [CartLine(name="Banner", unit_price_cents=250000, quantity=1)],
            customer_name="Nimal Perera",
            customer_contact="0771234567",
            payment_method="Credit",
        )
        result = runner.invoke(args=["credit", "outstanding"])
        assert result.exit_code == 0, result.output
        assert "Nimal Perera" in result.output
        assert "Total receivables: Rs. 2,500.00" in result.output

    def test_cleanup_sessions(self, app):
        result = app.test_cli_runner().invoke(args=["maintenance", "cleanup-sessions"])
        assert result.exit_code == 0, result.output
        assert "Deleted 0" in result.output
