import unittest

import numpy as np

from chemvat.catalog import default_catalog
from chemvat.codec import default_electrolysis, default_reactions
from chemvat.mixture import ReagentMixture
from chemvat.models import ReagentQuantity
from chemvat.reactors import ChemicalVat, Direction, VatConfiguration, run_vats


class VatTestCase(unittest.TestCase):
    def setUp(self):
        self.catalog = default_catalog()
        self.rules = default_reactions(self.catalog)
        self.water = self.catalog.lookup("water")
        self.oxygen = self.catalog.lookup("oxygen")
        self.nitrogen = self.catalog.lookup("nitrogen")
        self.hydrogen = self.catalog.lookup("hydrogen")
        self.sulfur = self.catalog.lookup("sulfur")
        self.sulfur_dioxide = self.catalog.lookup("sulfur_dioxide")

    def vat(self, name="vat", **configuration):
        return ChemicalVat(
            self.catalog,
            self.rules,
            VatConfiguration(**configuration),
            electrolysis=default_electrolysis(self.catalog),
            rng=np.random.default_rng(0),
            name=name,
        )


class TestDirection(unittest.TestCase):
    def test_opposites(self):
        self.assertIs(Direction.UP.opposite, Direction.DOWN)
        self.assertIs(Direction.EAST.opposite, Direction.WEST)
        self.assertTrue(Direction.DOWN.is_vertical)
        self.assertFalse(Direction.NORTH.is_vertical)


class TestHeat(VatTestCase):
    def test_heater_is_power_limited(self):
        vat = self.vat(heater_power=30000.0, heater_temperature=500.0)
        vat.mixture.add(ReagentQuantity(self.water, 1000, 22.0))
        vat.apply_heater()
        self.assertAlmostEqual(vat.mixture.precise_temperature, 22.0 + 1500.0 / 75.38, places=6)

    def test_heater_stops_at_target(self):
        vat = self.vat(heater_power=30000.0, heater_temperature=23.0)
        vat.mixture.add(ReagentQuantity(self.water, 1000, 22.0))
        vat.apply_heater()
        self.assertAlmostEqual(vat.mixture.precise_temperature, 23.0, places=6)
        vat.apply_heater()
        self.assertAlmostEqual(vat.mixture.precise_temperature, 23.0, places=6)

    def test_closed_vat_dissipates(self):
        vat = self.vat()
        vat.mixture.add(ReagentQuantity(self.water, 1000, 80.0))
        vat.dissipate_heat()
        expected = 80.0 - 58.0 * 30.0 * 0.05 / 75.38
        self.assertAlmostEqual(vat.mixture.precise_temperature, expected, places=6)

    def test_empty_vat_keeps_no_energy(self):
        vat = self.vat(heater_power=30000.0, heater_temperature=500.0)
        vat.tick()
        self.assertEqual(vat.mixture.energy, 0.0)
        self.assertEqual(vat.ticks, 1)


class TestMovement(VatTestCase):
    def test_solids_fall(self):
        upper, lower = self.vat("upper"), self.vat("lower")
        upper.connect(Direction.DOWN, lower)
        self.assertIs(lower.neighbours[Direction.UP], upper)
        upper.mixture.add(ReagentQuantity(self.sulfur, 1000))
        upper.move_reagents()
        self.assertEqual(upper.mixture.amount(self.sulfur), 0)
        self.assertEqual(lower.mixture.amount(self.sulfur), 1000)

    def test_liquids_level_sideways(self):
        a, b = self.vat("a"), self.vat("b")
        a.connect(Direction.EAST, b)
        a.mixture.add(ReagentQuantity(self.water, 1000))
        a.move_reagents()
        self.assertEqual(a.mixture.amount(self.water), 500)
        self.assertEqual(b.mixture.amount(self.water), 500)

    def test_liquids_drain_down(self):
        upper, lower = self.vat("upper"), self.vat("lower")
        upper.connect(Direction.DOWN, lower)
        upper.mixture.add(ReagentQuantity(self.water, 1000))
        upper.move_reagents()
        self.assertEqual(lower.mixture.amount(self.water), 1000)
        self.assertTrue(upper.mixture.is_empty())

    def test_gases_equalize(self):
        a, b = self.vat("a"), self.vat("b")
        a.connect(Direction.NORTH, b)
        a.mixture.add(ReagentQuantity(self.oxygen, 1000))
        a.move_reagents()
        self.assertEqual(a.mixture.amount(self.oxygen), 500)
        self.assertEqual(b.mixture.amount(self.oxygen), 500)

    def test_fire_spreads(self):
        a, b = self.vat("a"), self.vat("b")
        a.connect(Direction.UP, b)
        a.mixture.burning = True
        a.move_reagents()
        self.assertTrue(b.mixture.burning)


class TestReactions(VatTestCase):
    def test_sulfur_ignites(self):
        vat = self.vat()
        vat.mixture.force_add(ReagentQuantity(self.sulfur, 2000, 240.0))
        vat.mixture.force_add(ReagentQuantity(self.nitrogen, 24000, 240.0))
        vat.mixture.force_add(ReagentQuantity(self.oxygen, 8000, 240.0))
        temperature = vat.mixture.temperature
        # 15 * 8000 / 34000 units in the first tick
        self.assertEqual(vat.apply_reactions(), 3)
        self.assertTrue(vat.mixture.burning)
        self.assertEqual(vat.mixture.amount(self.sulfur_dioxide), 3)
        self.assertEqual(vat.mixture.amount(self.oxygen), 7994)
        self.assertGreater(vat.mixture.temperature, temperature)

    def test_burning_mixture_ignores_temperature(self):
        vat = self.vat()
        vat.mixture.add(ReagentQuantity(self.sulfur, 2000))
        vat.mixture.add(ReagentQuantity(self.oxygen, 8000))
        self.assertEqual(vat.apply_reactions(), 0)
        vat.mixture.burning = True
        self.assertGreater(vat.apply_reactions(), 0)
        self.assertTrue(vat.mixture.burning)

    def test_fire_goes_out_without_fuel(self):
        vat = self.vat()
        vat.mixture.add(ReagentQuantity(self.nitrogen, 1000))
        vat.mixture.burning = True
        vat.apply_reactions()
        self.assertFalse(vat.mixture.burning)

    def test_electrolysis(self):
        vat = self.vat(electrode_potential=4.0)
        vat.electrolysis_receiver = ReagentMixture()
        vat.mixture.add(ReagentQuantity(self.water, 1000))
        self.assertEqual(vat.apply_electrolysis(), 2)
        self.assertEqual(vat.mixture.amount(self.water), 998)
        self.assertEqual(vat.mixture.amount(self.oxygen), 2)
        self.assertEqual(vat.electrolysis_receiver.amount(self.hydrogen), 4)

    def test_electrolysis_below_minimum_potential(self):
        vat = self.vat(electrode_potential=1.0)
        vat.mixture.add(ReagentQuantity(self.water, 1000))
        self.assertEqual(vat.apply_electrolysis(), 0)
        self.assertEqual(vat.mixture.amount(self.water), 1000)


class TestSurroundings(VatTestCase):
    def test_open_vat_takes_in_air(self):
        vat = self.vat(open=True)
        vat.mixture.add(ReagentQuantity(self.water, 1000))
        taken = vat.exchange_with_atmosphere()
        self.assertGreater(taken, 0)
        self.assertAlmostEqual(vat.mixture.gas_amount, taken, delta=1)
        ratio = vat.mixture.amount(self.nitrogen) / vat.mixture.amount(self.oxygen)
        self.assertAlmostEqual(ratio, 780 / 210, places=2)

    def test_open_vat_vents(self):
        vat = self.vat(open=True, volume=1000)
        vat.mixture.add(ReagentQuantity(self.oxygen, 10000))
        vented = vat.exchange_with_atmosphere()
        self.assertLess(vented, 0)
        self.assertEqual(vat.mixture.gas_amount, 10000 + vented)
        self.assertAlmostEqual(vat.mixture.static_pressure, 1.0, delta=0.01)

    def test_spill(self):
        vat = self.vat(open=True, volume=1000)
        vat.mixture.force_add(ReagentQuantity(self.water, 1500))
        self.assertEqual(vat.spill_liquids(), 500)
        self.assertEqual(vat.mixture.liquid_amount, 1000)
        self.assertEqual(vat.spill_liquids(), 0)


class TestRunVats(VatTestCase):
    def test_sampling(self):
        vat = self.vat()
        vat.mixture.add(ReagentQuantity(self.water, 1000))
        (profile,) = run_vats([vat], ticks=10, sample_every=3)
        np.testing.assert_allclose(profile.time, [0.0, 0.15, 0.3, 0.45, 0.5])
        np.testing.assert_array_equal(profile.amounts["water"], [1000] * 5)
        self.assertEqual(profile.final()["amounts"], {"water": 1000})
        self.assertEqual(vat.ticks, 10)

    def test_invalid_sampling(self):
        with self.assertRaises(ValueError):
            run_vats([self.vat()], ticks=1, sample_every=0)

    def test_burner_heats_and_burns(self):
        vat = self.vat(heater_power=30000.0, heater_temperature=500.0)
        vat.mixture.force_add(ReagentQuantity(self.sulfur, 2000, 240.0))
        vat.mixture.force_add(ReagentQuantity(self.nitrogen, 24000, 240.0))
        vat.mixture.force_add(ReagentQuantity(self.oxygen, 8000, 240.0))
        (profile,) = run_vats([vat], ticks=50, sample_every=10)
        self.assertEqual(len(profile.time), 6)
        self.assertGreater(profile.temperature[-1], profile.temperature[0])
        self.assertGreater(profile.amounts["sulfur_dioxide"][-1], 0)
        self.assertLess(profile.amounts["sulfur"][-1], 2000)


if __name__ == '__main__':
    unittest.main()
