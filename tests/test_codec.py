import json
import tempfile
import unittest
from pathlib import Path

from chemvat.catalog import ReagentCatalog, default_catalog
from chemvat.codec import (
    decode_electrolysis,
    decode_reaction,
    default_electrolysis,
    default_reactions,
    electrolysis_from_json,
    electrolysis_to_json,
    encode_electrolysis,
    encode_reaction,
    load_reactions,
    parse_reactions,
    reaction_from_json,
    reaction_to_json,
)
from chemvat.conditions import ConcentrationCondition, TemperatureCondition
from chemvat.models import ReagentState
from chemvat.reactions import ReactionFlag

SULFUR_COMBUSTION = {
    "ingredients": [{"reagent": "sulfur", "amount": 1}, {"reagent": "oxygen", "amount": 2}],
    "results": [{"reagent": "sulfur_dioxide", "amount": 1}],
    "conditions": [{"type": "temperature", "min": 232}],
    "flags": ["combustion"],
    "energy": 297,
    "rate": {"multiply": [15, "Conc#oxygen"]},
}


class TestBundledRules(unittest.TestCase):
    def setUp(self):
        self.catalog = default_catalog()

    def test_bundled_rules_load(self):
        rules = default_reactions(self.catalog)
        self.assertEqual(len(rules), 7)
        combustion = rules[0]
        self.assertEqual(combustion.id, "combustion/sulfur")
        self.assertTrue(combustion.has_flag(ReactionFlag.COMBUSTION))
        self.assertEqual(combustion.temperature_condition, TemperatureCondition(232.0))
        self.assertIn(
            ConcentrationCondition(self.catalog.lookup("oxygen"), 0.1, None, ReagentState.GAS),
            combustion.conditions,
        )
        (water,) = default_electrolysis(self.catalog)
        self.assertEqual(water.minimum_potential, 1.5)
        self.assertEqual([r.negative for r in water.results], [True, False])

    def test_json_form_round_trips(self):
        for rule in default_reactions(self.catalog):
            with self.subTest(rule=rule.id):
                self.assertEqual(reaction_from_json(reaction_to_json(rule), self.catalog), rule)
        for rule in default_electrolysis(self.catalog):
            self.assertEqual(electrolysis_from_json(electrolysis_to_json(rule), self.catalog), rule)


class TestJson(unittest.TestCase):
    def setUp(self):
        self.catalog = default_catalog()

    def test_default_ids(self):
        rules = parse_reactions([SULFUR_COMBUSTION, SULFUR_COMBUSTION], self.catalog, prefix="fire")
        self.assertEqual([rule.id for rule in rules], ["fire_0", "fire_1"])

    def test_unknown_reagent(self):
        data = dict(SULFUR_COMBUSTION, results=[{"reagent": "phlogiston", "amount": 1}])
        with self.assertRaises(ValueError):
            reaction_from_json(data, self.catalog, default_id="x")

    def test_unknown_flag(self):
        data = dict(SULFUR_COMBUSTION, flags=["explosive"])
        with self.assertRaises(ValueError):
            reaction_from_json(data, self.catalog, default_id="x")

    def test_missing_id(self):
        with self.assertRaises(ValueError):
            reaction_from_json(SULFUR_COMBUSTION, self.catalog)

    def test_load_from_file(self):
        with tempfile.TemporaryDirectory() as directory:
            path = Path(directory) / "burning.json"
            path.write_text(json.dumps({"reactions": [SULFUR_COMBUSTION]}), encoding="utf-8")
            (rule,) = load_reactions(path, self.catalog)
        self.assertEqual(rule.id, "burning_0")
        self.assertEqual(rule.energy, 297.0)


class TestBinary(unittest.TestCase):
    def setUp(self):
        self.catalog = default_catalog()
        self.rules = default_reactions(self.catalog)

    def test_round_trip(self):
        for rule in self.rules:
            with self.subTest(rule=rule.id):
                self.assertEqual(decode_reaction(encode_reaction(rule), self.catalog), rule)

    def test_truncated(self):
        data = encode_reaction(self.rules[0])
        with self.assertRaises(ValueError):
            decode_reaction(data[:-1], self.catalog)
        with self.assertRaises(ValueError):
            decode_reaction(b"", self.catalog)

    def test_trailing_bytes(self):
        data = encode_reaction(self.rules[0])
        with self.assertRaises(ValueError):
            decode_reaction(data + b"\x00", self.catalog)

    def test_reagents_resolve_against_reader_catalog(self):
        data = encode_reaction(self.rules[0])
        with self.assertRaises(ValueError):
            decode_reaction(data, ReagentCatalog())


class TestElectrolysisBinary(unittest.TestCase):
    def setUp(self):
        self.catalog = default_catalog()
        self.rules = default_electrolysis(self.catalog)

    def test_round_trip(self):
        self.assertTrue(self.rules)
        for rule in self.rules:
            with self.subTest(rule=rule.id):
                decoded = decode_electrolysis(encode_electrolysis(rule), self.catalog)
                self.assertEqual(decoded, rule)
                self.assertEqual(
                    [r.negative for r in decoded.results], [r.negative for r in rule.results]
                )

    def test_truncated_and_trailing(self):
        data = encode_electrolysis(self.rules[0])
        with self.assertRaises(ValueError):
            decode_electrolysis(data[:-1], self.catalog)
        with self.assertRaises(ValueError):
            decode_electrolysis(data + b"\x00", self.catalog)


if __name__ == '__main__':
    unittest.main()
