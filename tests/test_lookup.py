import unittest
from concurrent.futures import ThreadPoolExecutor
from unittest import mock

import requests

from reactionplanner.errors import CompoundNotFoundError, InvalidIdentifierError
from reactionplanner.lookup import (
    CompoundInfo,
    PubChemLookup,
    is_cas_number,
    lookup_async,
    parse_density,
    parse_temperature,
    validate_cas,
)


def _response(payload=None, status=200):
    response = mock.Mock(status_code=status)
    response.json.return_value = payload
    if status >= 400 and status not in (400, 404):
        response.raise_for_status.side_effect = requests.HTTPError(f"{status} Server Error")
    return response


def _section(text):
    return {"Record": {"Section": [{"Information": [{"Value": {"StringWithMarkup": [{"String": text}]}}]}]}}


def _router(routes):
    def get(url, params=None, timeout=None):
        key = url if not params else f"{url}?heading={params['heading']}"
        for fragment, result in routes.items():
            if fragment in key:
                if isinstance(result, Exception):
                    raise result
                return result
        return _response(status=404)

    return get


ETHANOL_ROUTES = {
    "/cids/JSON": _response({"IdentifierList": {"CID": [702]}}),
    "/property/": _response(
        {
            "PropertyTable": {
                "Properties": [
                    {"CID": 702, "MolecularWeight": "46.07", "CanonicalSMILES": "CCO", "IUPACName": "ethanol"}
                ]
            }
        }
    ),
    "heading=Melting": _response(_section("-114.1 °C")),
    "heading=Boiling": _response(_section("78.2 °C")),
    "heading=Density": _response(_section("0.789 g/cm³ at 20 °C")),
}


class TestIdentifiers(unittest.TestCase):
    def test_valid_cas(self):
        for cas in ("50-78-2", "67-56-1", "64-17-5", "7732-18-5"):
            self.assertEqual(validate_cas(cas), cas)

    def test_bad_check_digit(self):
        with self.assertRaises(InvalidIdentifierError):
            validate_cas("50-78-3")

    def test_not_a_cas(self):
        self.assertFalse(is_cas_number("aspirin"))
        self.assertTrue(is_cas_number(" 50-78-2 "))
        with self.assertRaises(ValueError):
            validate_cas("aspirin")


class TestParsers(unittest.TestCase):
    def test_temperature(self):
        self.assertAlmostEqual(parse_temperature("-114.1 °C"), -114.1)
        self.assertAlmostEqual(parse_temperature("32 °F"), 0.0)
        self.assertAlmostEqual(parse_temperature("300 K"), 26.85)
        self.assertAlmostEqual(parse_temperature("135-136 °C"), 135.0)
        self.assertAlmostEqual(parse_temperature("−20"), -20.0)
        self.assertIsNone(parse_temperature("decomposes"))

    def test_density(self):
        self.assertAlmostEqual(parse_density("0.789 g/cm³ at 20 °C"), 0.789)
        self.assertAlmostEqual(parse_density("789 kg/m3"), 0.789)
        self.assertAlmostEqual(parse_density("Relative density (water = 1): 0.79"), 0.79)
        self.assertIsNone(parse_density("no data"))
        self.assertIsNone(parse_density("0 g/mL"))


class TestCompoundInfo(unittest.TestCase):
    def test_melting_point_decides(self):
        self.assertTrue(CompoundInfo(46.07, "CCO", "ethanol", melting_point=-114.1, density=0.789).is_liquid())
        self.assertFalse(CompoundInfo(180.16, "", "aspirin", melting_point=135.0, density=1.40).is_liquid())

    def test_density_alone_means_liquid(self):
        info = CompoundInfo(100.0, "", "x", density=1.1)
        self.assertTrue(info.has_physical_state)
        self.assertTrue(info.is_liquid())

    def test_no_data(self):
        info = CompoundInfo(100.0, "", "x")
        self.assertFalse(info.has_physical_state)
        self.assertFalse(info.is_liquid())


class TestPubChemLookup(unittest.TestCase):
    def setUp(self):
        self.session = mock.Mock()
        self.client = PubChemLookup("https://example.test/rest/", timeout=5.0, session=self.session)

    def test_lookup_by_cas(self):
        self.session.get.side_effect = _router(ETHANOL_ROUTES)
        info = self.client.lookup("64-17-5")
        self.assertAlmostEqual(info.mw, 46.07)
        self.assertEqual(info.smiles, "CCO")
        self.assertEqual(info.name, "ethanol")
        self.assertEqual(info.cas, "64-17-5")
        self.assertAlmostEqual(info.melting_point, -114.1)
        self.assertAlmostEqual(info.boiling_point, 78.2)
        self.assertAlmostEqual(info.density, 0.789)
        first_url = self.session.get.call_args_list[0][0][0]
        self.assertTrue(first_url.startswith("https://example.test/rest/pug/compound/name/64-17-5"))
        self.assertEqual(self.session.get.call_args_list[0][1]["timeout"], 5.0)

    def test_lookup_by_name_has_no_cas(self):
        self.session.get.side_effect = _router(ETHANOL_ROUTES)
        self.assertEqual(self.client.lookup("ethanol").cas, "")

    def test_bad_cas_makes_no_request(self):
        with self.assertRaises(InvalidIdentifierError):
            self.client.lookup("64-17-4")
        self.session.get.assert_not_called()

    def test_blank_identifier(self):
        with self.assertRaises(InvalidIdentifierError):
            self.client.lookup("  ")

    def test_not_found(self):
        self.session.get.side_effect = _router({})
        with self.assertRaises(CompoundNotFoundError):
            self.client.lookup("unobtainium")

    def test_missing_properties(self):
        routes = dict(ETHANOL_ROUTES)
        routes["/property/"] = _response({"PropertyTable": {"Properties": []}})
        self.session.get.side_effect = _router(routes)
        with self.assertRaises(CompoundNotFoundError):
            self.client.lookup("ethanol")

    def test_physical_state_failures_are_tolerated(self):
        routes = dict(ETHANOL_ROUTES)
        routes["heading=Melting"] = requests.ConnectionError("reset")
        del routes["heading=Density"]
        self.session.get.side_effect = _router(routes)
        info = self.client.lookup("ethanol")
        self.assertIsNone(info.melting_point)
        self.assertIsNone(info.density)
        self.assertFalse(info.has_physical_state)

    def test_server_error_propagates(self):
        self.session.get.side_effect = _router({"/cids/JSON": _response(status=503)})
        with self.assertRaises(requests.HTTPError):
            self.client.lookup("ethanol")

    def test_lookup_async(self):
        self.session.get.side_effect = _router(ETHANOL_ROUTES)
        with ThreadPoolExecutor(max_workers=1) as executor:
            future = lookup_async(self.client, "ethanol", executor=executor)
            self.assertEqual(future.result(timeout=5).name, "ethanol")

    def test_lookup_async_carries_errors(self):
        self.session.get.side_effect = _router({})
        future = lookup_async(self.client, "unobtainium")
        with self.assertRaises(CompoundNotFoundError):
            future.result(timeout=5)


if __name__ == '__main__':
    unittest.main()
