import unittest

from chemvat.catalog import default_catalog
from chemvat.constants import GAS_CONSTANT
from chemvat.models import ReagentQuantity, ReagentState
from chemvat.transaction import Transaction
from chemvat.volume import VolumeMixture


class TestVolumeMixture(unittest.TestCase):
    def setUp(self):
        self.catalog = default_catalog()
        self.water = self.catalog.lookup("water")
        self.oxygen = self.catalog.lookup("oxygen")
        self.sulfur = self.catalog.lookup("sulfur")

    def test_gas_rejected_only_when_full(self):
        full = VolumeMixture(1000)
        full.add(ReagentQuantity(self.water, 1000))
        self.assertEqual(full.free_volume, 0)
        self.assertEqual(full.add(ReagentQuantity(self.oxygen, 100)), 0)

        almost = VolumeMixture(1000)
        almost.add(ReagentQuantity(self.water, 999))
        self.assertEqual(almost.add(ReagentQuantity(self.oxygen, 5000)), 5000)
        self.assertEqual(almost.gas_amount, 5000)
        self.assertEqual(almost.used_volume, 999)

    def test_open_container_always_takes_gas(self):
        vat = VolumeMixture(1000, is_open=True)
        vat.add(ReagentQuantity(self.water, 1000))
        self.assertEqual(vat.add(ReagentQuantity(self.oxygen, 100)), 100)

    def test_condensed_states_limited_by_free_volume(self):
        vat = VolumeMixture(1000)
        self.assertEqual(vat.add(ReagentQuantity(self.water, 700)), 700)
        self.assertEqual(vat.add(ReagentQuantity(self.sulfur, 700)), 300)
        self.assertEqual(vat.add(ReagentQuantity(self.water, 1)), 0)
        self.assertEqual(vat.liquid_amount, 700)
        self.assertEqual(vat.solid_amount, 300)
        self.assertAlmostEqual(vat.fill_level, 1.0)
        self.assertAlmostEqual(vat.solid_level, 0.3)

    def test_force_add_ignores_volume(self):
        vat = VolumeMixture(100)
        self.assertEqual(vat.force_add(ReagentQuantity(self.water, 300)), 300)
        self.assertEqual(vat.used_volume, 300)
        self.assertEqual(vat.free_volume, -200)
        self.assertEqual(vat.headspace, 0)
        self.assertEqual(vat.add(ReagentQuantity(self.water, 10)), 0)

    def test_static_pressure(self):
        vat = VolumeMixture(1000)
        vat.add(ReagentQuantity(self.oxygen, 1000))
        expected = 1000 * GAS_CONSTANT * vat.absolute_temperature / 1000
        self.assertAlmostEqual(vat.static_pressure, expected)
        vat.is_open = True
        self.assertEqual(vat.headspace, 3000)
        self.assertAlmostEqual(vat.static_pressure, expected / 3)

    def test_state_totals_follow_temperature(self):
        vat = VolumeMixture(1000)
        vat.add(ReagentQuantity(self.water, 500, 22.0))
        self.assertEqual(vat.state_amount(ReagentState.LIQUID), 500)
        vat.add_energy(vat.heat_mass * 100.0)
        self.assertEqual(vat.state(self.water), ReagentState.GAS)
        self.assertEqual(vat.gas_amount, 500)
        self.assertEqual(vat.used_volume, 0)

    def test_abort_refreshes_state_totals(self):
        vat = VolumeMixture(1000)
        with Transaction.open_outer() as transaction:
            vat.add(ReagentQuantity(self.water, 400), transaction)
            self.assertEqual(vat.liquid_amount, 400)
            transaction.abort()
        self.assertEqual(vat.liquid_amount, 0)
        self.assertEqual(vat.free_volume, 1000)

    def test_round_trip(self):
        vat = VolumeMixture(2000, is_open=True)
        vat.add(ReagentQuantity(self.water, 800, 40.0))
        data = vat.to_dict()
        self.assertEqual(data["volume"], 2000)
        self.assertTrue(data["open"])
        restored = VolumeMixture.from_dict(data, self.catalog, volume=2000)
        self.assertEqual(restored.liquid_amount, 800)
        self.assertAlmostEqual(restored.temperature, 40.0)


if __name__ == '__main__':
    unittest.main()
