import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from typer.testing import CliRunner

from reactionplanner.cli import app
from reactionplanner.lookup import CompoundInfo


class TestCli(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.runner = CliRunner()
        self.env = {
            "REACTIONPLANNER_DB": str(Path(self.tmp.name) / "plan.sqlite3"),
            "REACTIONPLANNER_DEBOUNCE_MS": "0",
        }

    def tearDown(self):
        self.tmp.cleanup()

    def invoke(self, *args, **kwargs):
        return self.runner.invoke(app, list(args), env=self.env, **kwargs)

    def invoke_json(self, *args):
        result = self.invoke(*args)
        self.assertEqual(result.exit_code, 0, result.output)
        return json.loads(result.stdout)

    def test_plan_persists_between_commands(self):
        sm = self.invoke_json("set-sm", "--mw", "100", "--mass", "100", "--name", "SM")
        self.assertEqual(sm["mmol"], "1.0000")
        reagent = self.invoke_json("add-reagent", "--mw", "50", "--eq", "2.0", "--purity", "50")
        self.assertEqual(reagent["id"], 1)
        self.assertEqual(reagent["mass"], "200.00")
        self.invoke_json("set-product", "--mw", "200", "--actual", "150")

        snap = self.invoke_json("show")
        self.assertEqual(snap["limitingReagent"], "sm")
        self.assertEqual(snap["product"]["theoreticalMass"], "200.00")
        self.assertEqual(snap["product"]["percentYield"], "75.0%")

    def test_show_table(self):
        self.invoke_json("set-sm", "--mw", "100", "--mass", "100", "--name", "SM")
        self.invoke_json("add-reagent", "--name", "NaOH", "--mw", "40", "--eq", "1.5")
        result = self.invoke("show", "--table")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("NaOH", result.stdout)
        self.assertIn("1.0000", result.stdout)
        self.assertIn("Procedure: 0/0", result.stdout)

    def test_reagent_type_switch(self):
        self.invoke_json("set-sm", "--mw", "100", "--mass", "100")
        self.invoke_json("add-reagent", "--mw", "100")
        liquid = self.invoke_json("set-type", "1", "pure-liquid")
        self.assertEqual(liquid["type"], "pure-liquid")
        self.assertEqual(liquid["mass"], "")
        liquid = self.invoke_json("set-reagent", "1", "--density", "0.8")
        self.assertEqual(liquid["volume"], "0.125")

    def test_molarity_reagent(self):
        self.invoke_json("set-sm", "--mw", "100", "--mass", "100")
        reagent = self.invoke_json("add-reagent", "--type", "solution-molarity", "--eq", "2.0", "--molarity", "2.5")
        self.assertEqual(reagent["volume"], "0.800")

    def test_errors_exit_nonzero(self):
        self.invoke_json("add-reagent")
        result = self.invoke("set-reagent", "1", "--molarity", "2")
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Error:", result.output)
        result = self.invoke("remove-reagent", "99")
        self.assertEqual(result.exit_code, 1)
        self.assertIn("No reagent with id 99", result.output)

    def test_steps(self):
        result = self.invoke("add-step", "Dissolve SM")
        self.assertEqual(result.exit_code, 0, result.output)
        step_id = result.stdout.strip()
        self.assertTrue(step_id.startswith("step-"))
        self.invoke("add-step", "Add base")
        result = self.invoke("toggle-step", step_id)
        self.assertEqual(result.stdout.strip(), "1/2")
        self.assertEqual(self.invoke("observe", step_id, "clear solution").exit_code, 0)
        steps = self.invoke_json("show")["conditions"]["steps"]
        self.assertEqual(steps[0]["observation"], "clear solution")
        self.assertEqual(self.invoke("add-step", "  ").exit_code, 1)

    def test_conditions(self):
        self.invoke_json("set-sm", "--mw", "100", "--mass", "100")
        conditions = self.invoke_json("set-conditions", "--solvent", "THF", "--conc", "0.1")
        self.assertEqual(conditions["solventVolume"], "10.000")
        self.assertNotIn("steps", conditions)

    def test_clear(self):
        self.invoke_json("add-reagent")
        result = self.invoke("clear", input="n\n")
        self.assertIn("Nothing changed.", result.output)
        self.assertEqual(len(self.invoke_json("show")["reagents"]), 1)
        result = self.invoke("clear", "--yes")
        self.assertIn("Plan cleared.", result.output)
        self.assertEqual(self.invoke_json("show")["reagents"], [])

    def test_save_and_load(self):
        self.invoke_json("set-sm", "--mw", "180.16", "--mass", "100", "--name", "aspirin")
        path = Path(self.tmp.name) / "plan.json"
        self.assertEqual(self.invoke("save", str(path)).exit_code, 0)
        self.invoke("clear", "--yes")
        result = self.invoke("load", str(path))
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(self.invoke_json("show")["startingMaterial"]["name"], "aspirin")

    def test_load_rejects_bad_file(self):
        path = Path(self.tmp.name) / "broken.json"
        path.write_text("{oops", encoding="utf-8")
        result = self.invoke("load", str(path))
        self.assertEqual(result.exit_code, 1)

    def test_fetch(self):
        info = CompoundInfo(mw=46.07, smiles="CCO", name="ethanol", cas="64-17-5", melting_point=-114.1, density=0.789)
        with mock.patch("reactionplanner.cli.PubChemLookup") as client_cls:
            client_cls.return_value.lookup.return_value = info
            self.invoke_json("add-reagent")
            reagent = self.invoke_json("fetch", "reagent", "64-17-5", "--reagent", "1")
        client_cls.return_value.lookup.assert_called_once_with("64-17-5")
        self.assertEqual(reagent["name"], "ethanol")
        self.assertEqual(reagent["type"], "pure-liquid")
        self.assertEqual(reagent["density"], "0.789")

    def test_fetch_requires_reagent_id(self):
        with mock.patch("reactionplanner.cli.PubChemLookup"):
            result = self.invoke("fetch", "reagent", "ethanol")
        self.assertEqual(result.exit_code, 1)


if __name__ == '__main__':
    unittest.main()
