# Overview: Threaded concurrency checks for stock settlement.

"""
Concurrency tests for stock settlement.

Runs real threads against a file-backed SQLite database (in-memory SQLite
shares one connection, which would hide locking behaviour).
"""
import os
import tempfile
import threading
import unittest
from decimal import Decimal

from mbdara import create_app
from mbdara.extensions import db
from mbdara.models import Organization, Product, Transaction
from mbdara.services import transaction_service
from mbdara.services.stock_service import InsufficientStockError
from mbdara.services.transaction_service import TransactionItemInput


class StockConcurrencyTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.tmpdir.name, "concurrency.db")
        self.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
            "LOG_LEVEL": "WARNING",
        })

        with self.app.app_context():
            db.drop_all()
            db.create_all()

            org = Organization(name="Concurrency Org", slug="concurrency-org", is_active=True)
            db.session.add(org)
            db.session.commit()
            self.org_id = org.id

            product = Product(
                org_id=self.org_id,
                name="Last Units",
                price=Decimal("100"),
                cogs=Decimal("40"),
                stock=5,
            )
            db.session.add(product)
            db.session.commit()
            self.product_id = product.id

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.session.remove()
            db.engine.dispose()
        self.tmpdir.cleanup()

    def _run_orders(self, quantities):
        results = []
        lock = threading.Lock()
        barrier = threading.Barrier(len(quantities))

        def worker(quantity):
            with self.app.app_context():
                try:
                    barrier.wait()
                    created = transaction_service.create_transaction(
                        self.org_id, [TransactionItemInput(self.product_id, quantity)]
                    )
                    with lock:
                        results.append(("ok", created["id"]))
                except Exception as exc:
                    with lock:
                        results.append(("error", exc))
                finally:
                    db.session.remove()

        threads = [threading.Thread(target=worker, args=(q,)) for q in quantities]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        return results

    def _stock_and_count(self):
        with self.app.app_context():
            stock = db.session.get(Product, self.product_id).stock
            count = db.session.query(Transaction).count()
            db.session.remove()
        return stock, count

    def test_two_orders_for_full_stock(self):
        results = self._run_orders([5, 5])

        successes = [r for r in results if r[0] == "ok"]
        failures = [r[1] for r in results if r[0] == "error"]
        self.assertEqual(len(successes), 1)
        self.assertEqual(len(failures), 1)
        self.assertIsInstance(failures[0], InsufficientStockError)

        stock, count = self._stock_and_count()
        self.assertEqual(stock, 0)
        self.assertEqual(count, 1)

    def test_many_single_unit_orders_never_oversell(self):
        results = self._run_orders([1] * 8)

        successes = [r for r in results if r[0] == "ok"]
        failures = [r[1] for r in results if r[0] == "error"]
        self.assertEqual(len(successes), 5)
        self.assertEqual(len(failures), 3)
        for exc in failures:
            self.assertIsInstance(exc, InsufficientStockError)

        stock, count = self._stock_and_count()
        self.assertEqual(stock, 0)
        self.assertEqual(count, 5)


if __name__ == "__main__":
    unittest.main()
