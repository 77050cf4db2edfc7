import unittest

from reactionplanner.models import Reagent, ReagentType
from reactionplanner.reagent_types import FIELDS_BY_TYPE, fields_for, switch_type


class TestTypeFields(unittest.TestCase):
    def test_every_type_has_fields(self):
        self.assertEqual(set(FIELDS_BY_TYPE), set(ReagentType))

    def test_field_applicability(self):
        self.assertTrue(fields_for(ReagentType.PURE_SOLID).applies("purity"))
        self.assertTrue(fields_for(ReagentType.PURE_SOLID).applies("mass"))
        self.assertFalse(fields_for(ReagentType.PURE_SOLID).applies("density"))
        self.assertTrue(fields_for("pure-liquid").applies("density"))
        self.assertFalse(fields_for(ReagentType.PURE_LIQUID).applies("mass"))
        self.assertTrue(fields_for(ReagentType.SOLUTION_MOLARITY).applies("molarity"))
        self.assertTrue(fields_for(ReagentType.SOLUTION_MOLARITY).applies("purity"))
        self.assertTrue(fields_for(ReagentType.SOLUTION_DENSITY).applies("purity"))
        self.assertTrue(fields_for(ReagentType.SOLUTION_DENSITY).applies("density"))

    def test_unknown_type_rejected(self):
        with self.assertRaises(ValueError):
            fields_for("gas")


class TestSwitchType(unittest.TestCase):
    def setUp(self):
        self.reagent = Reagent(id=1, mw="46.07", eq="2.0", name="ethanol", cas="64-17-5")
        self.reagent.mass = 92.14

    def test_switch_to_liquid_clears_mass(self):
        switch_type(self.reagent, ReagentType.PURE_LIQUID)
        self.assertIs(self.reagent.type, ReagentType.PURE_LIQUID)
        self.assertIsNone(self.reagent.mass)
        self.assertEqual(self.reagent.density, "")

    def test_shared_inputs_survive(self):
        switch_type(self.reagent, ReagentType.SOLUTION_MOLARITY)
        self.assertEqual(self.reagent.mw, "46.07")
        self.assertEqual(self.reagent.eq, "2.0")
        self.assertEqual(self.reagent.name, "ethanol")
        self.assertEqual(self.reagent.cas, "64-17-5")

    def test_purity_survives_solution_round_trip(self):
        self.reagent.purity = "97"
        switch_type(self.reagent, ReagentType.SOLUTION_DENSITY)
        switch_type(self.reagent, ReagentType.PURE_SOLID)
        self.assertEqual(self.reagent.purity, "97")

    def test_chain_of_transitions_converges(self):
        direct = Reagent(id=2, mw="46.07", eq="2.0")
        switch_type(direct, ReagentType.SOLUTION_DENSITY)

        switch_type(self.reagent, ReagentType.PURE_LIQUID)
        self.reagent.density = "0.789"
        switch_type(self.reagent, ReagentType.SOLUTION_MOLARITY)
        self.reagent.molarity = "2.0"
        switch_type(self.reagent, ReagentType.SOLUTION_DENSITY)

        self.assertEqual(self.reagent.density, direct.density)
        self.assertEqual(self.reagent.molarity, direct.molarity)
        self.assertIsNone(self.reagent.volume)

    def test_same_type_is_noop(self):
        self.reagent.type = ReagentType.PURE_LIQUID
        self.reagent.density = "0.789"
        switch_type(self.reagent, "pure-liquid")
        self.assertEqual(self.reagent.density, "0.789")


if __name__ == '__main__':
    unittest.main()
