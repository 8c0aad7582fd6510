import unittest

from chemvat.adapters import FluidView, ItemView
from chemvat.catalog import default_catalog
from chemvat.transaction import Transaction
from chemvat.volume import VolumeMixture


class TestFluidView(unittest.TestCase):
    def setUp(self):
        catalog = default_catalog()
        self.water = catalog.lookup("water")
        self.sulfur = catalog.lookup("sulfur")
        self.mixture = VolumeMixture(1000)
        self.view = FluidView(self.mixture, self.water)

    def test_insert_and_extract(self):
        with Transaction.open_outer() as transaction:
            self.assertEqual(self.view.insert(self.water, 8100, transaction), 8100)
            transaction.commit()
        self.assertEqual(self.mixture.amount(self.water), 400)
        self.assertEqual(self.view.stored, 8100)
        self.assertEqual(self.view.capacity, 20250)
        with Transaction.open_outer() as transaction:
            self.assertEqual(self.view.extract(self.water, 100, transaction), 100)
            transaction.commit()
        self.assertEqual(self.mixture.amount(self.water), 395)

    def test_insert_limited_by_volume(self):
        with Transaction.open_outer() as transaction:
            self.assertEqual(self.view.insert(self.water, 81000, transaction), 20250)
            transaction.commit()
        self.assertEqual(self.mixture.amount(self.water), 1000)

    def test_other_reagents_and_rollback(self):
        with Transaction.open_outer() as transaction:
            self.assertEqual(self.view.insert(self.sulfur, 8100, transaction), 0)
            self.view.insert(self.water, 8100, transaction)
        self.assertTrue(self.mixture.is_empty())


class TestItemView(unittest.TestCase):
    def setUp(self):
        catalog = default_catalog()
        self.sulfur = catalog.lookup("sulfur")
        self.water = catalog.lookup("water")
        self.mixture = VolumeMixture(10000)
        self.view = ItemView(self.mixture, self.sulfur)

    def test_only_whole_items(self):
        with Transaction.open_outer() as transaction:
            self.assertEqual(self.view.insert(self.sulfur, 3, transaction), 2)
            transaction.commit()
        self.assertEqual(self.mixture.amount(self.sulfur), 8000)
        self.assertEqual(self.view.stored, 2)
        with Transaction.open_outer() as transaction:
            self.assertEqual(self.view.extract(self.sulfur, 5, transaction), 2)
            self.assertEqual(self.view.extract(self.water, 1, transaction), 0)
            transaction.commit()
        self.assertTrue(self.mixture.is_empty())

    def test_invalid_item_amount(self):
        with self.assertRaises(ValueError):
            ItemView(self.mixture, self.sulfur, item_amount=0)


if __name__ == '__main__':
    unittest.main()
