import math
import unittest

from chemvat.catalog import default_catalog
from chemvat.kinetics import (
    Catalyzer,
    Concentration,
    Constant,
    Operation,
    Temperature,
    add,
    divide,
    equation_to_json,
    evaluate,
    maximum,
    minimum,
    multiply,
    parse_equation,
    polynomial,
    subtract,
)
from chemvat.thermo import MixtureConditions


class StubConditions(MixtureConditions):
    def __init__(self, temperature=22.0, catalyzer=0.0, concentrations=None):
        self._temperature = temperature
        self._catalyzer = catalyzer
        self._concentrations = concentrations or {}

    @property
    def temperature(self):
        return self._temperature

    @property
    def heat_mass(self):
        return 1.0

    @property
    def catalyzer(self):
        return self._catalyzer

    def concentration(self, reagent, state=None):
        return self._concentrations.get(reagent, 0.0)


class TestEquations(unittest.TestCase):
    def setUp(self):
        self.catalog = default_catalog()
        self.oxygen = self.catalog.lookup("oxygen")

    def test_operators(self):
        conditions = StubConditions()
        self.assertAlmostEqual(evaluate(add(Constant(1), Constant(2.5)), conditions), 3.5)
        self.assertAlmostEqual(
            evaluate(subtract(Constant(10), Constant(2), Constant(3)), conditions), 5.0
        )
        self.assertAlmostEqual(evaluate(multiply(Constant(4), Constant(0.5)), conditions), 2.0)
        self.assertAlmostEqual(evaluate(divide(Constant(9), Constant(3)), conditions), 3.0)
        self.assertAlmostEqual(evaluate(minimum(Constant(4), Constant(-1)), conditions), -1.0)
        self.assertAlmostEqual(evaluate(maximum(Constant(4), Constant(-1)), conditions), 4.0)

    def test_evaluation_is_total(self):
        conditions = StubConditions()
        self.assertEqual(evaluate(divide(Constant(1), Constant(0)), conditions), 0.0)
        self.assertEqual(evaluate(Operation("min", ()), conditions), 0.0)
        self.assertEqual(evaluate(Operation("max", ()), conditions), 0.0)
        self.assertEqual(evaluate(Constant(math.inf), conditions), 0.0)
        self.assertEqual(evaluate(multiply(Constant(math.inf), Constant(0)), conditions), 0.0)

    def test_variables(self):
        conditions = StubConditions(
            temperature=300.0, catalyzer=2.0, concentrations={self.oxygen: 0.25}
        )
        self.assertEqual(evaluate(Temperature(), conditions), 300.0)
        self.assertEqual(evaluate(Catalyzer(), conditions), 2.0)
        self.assertEqual(evaluate(Concentration(self.oxygen), conditions), 0.25)

    def test_polynomial(self):
        # 0.005 * T - 1.5 at 400 C
        equation = polynomial(Temperature(), 0.005, -1.5)
        self.assertAlmostEqual(evaluate(equation, StubConditions(temperature=400.0)), 0.5)

        quadratic = polynomial(Temperature(), -0.00005, 0.465, -5.0)
        expected = -0.00005 * 400.0**2 + 0.465 * 400.0 - 5.0
        self.assertAlmostEqual(evaluate(quadratic, StubConditions(temperature=400.0)), expected)

    def test_polynomial_needs_three_terms(self):
        with self.assertRaises(ValueError):
            Operation("polynomial", (Temperature(), Constant(1.0)))

    def test_unknown_operator(self):
        with self.assertRaises(ValueError):
            Operation("power", (Constant(1.0), Constant(2.0)))

    def test_parse(self):
        equation = parse_equation({"multiply": [15, "Conc#oxygen"]}, self.catalog)
        self.assertEqual(equation, multiply(Constant(15.0), Concentration(self.oxygen)))
        conditions = StubConditions(concentrations={self.oxygen: 0.2})
        self.assertAlmostEqual(evaluate(equation, conditions), 3.0)

        self.assertEqual(parse_equation("temp", self.catalog), Temperature())
        self.assertEqual(parse_equation("catalyzerStrength", self.catalog), Catalyzer())
        self.assertEqual(
            parse_equation("concentration#oxygen", self.catalog), Concentration(self.oxygen)
        )

    def test_parse_multiple_keys_are_summed(self):
        equation = parse_equation({"add": [1, 2], "multiply": [2, 3]}, self.catalog)
        self.assertAlmostEqual(evaluate(equation, StubConditions()), 9.0)

    def test_parse_errors(self):
        with self.assertRaises(ValueError):
            parse_equation("pressure", self.catalog)
        with self.assertRaises(ValueError):
            parse_equation("Conc#unobtainium", self.catalog)
        with self.assertRaises(ValueError):
            parse_equation({"power": [1, 2]}, self.catalog)
        with self.assertRaises(ValueError):
            parse_equation(True, self.catalog)

    def test_json_form(self):
        data = {"polynomial": ["T", -0.00005, 0.465, -5.0]}
        equation = parse_equation(data, self.catalog)
        self.assertEqual(equation_to_json(equation), data)
        self.assertEqual(parse_equation(equation_to_json(equation), self.catalog), equation)


if __name__ == '__main__':
    unittest.main()
