import copy
import unittest

from spadmin.admin.dummy import DummyAdminApi, default_fixture
from spadmin.errors import AmbiguousTargetError
from spadmin.models import SearchApplicationHandle
from spadmin.search.resolver import resolve_targets


def _fixture(count: int) -> dict:
    fixture = default_fixture()
    template = fixture["search_applications"][0]
    fixture["search_applications"] = []
    for idx in range(count):
        app = copy.deepcopy(template)
        app["identity"] = f"ssa-{idx}"
        app["name"] = f"SSA {idx}"
        fixture["search_applications"].append(app)
    return fixture


class TestResolver(unittest.TestCase):
    def test_single_candidate_is_resolved(self):
        handles = resolve_targets(DummyAdminApi(_fixture(1)))
        self.assertEqual([h.name for h in handles], ["SSA 0"])

    def test_multiple_candidates_are_ambiguous(self):
        with self.assertRaises(AmbiguousTargetError) as ctx:
            resolve_targets(DummyAdminApi(_fixture(2)))
        self.assertEqual(ctx.exception.candidates, ("SSA 0", "SSA 1"))

    def test_no_candidates_resolves_nothing(self):
        self.assertEqual(resolve_targets(DummyAdminApi(_fixture(0))), [])

    def test_name_lookup_and_missing_name(self):
        api = DummyAdminApi(_fixture(2))
        self.assertEqual([h.identity for h in resolve_targets(api, "ssa 1")], ["ssa-1"])
        self.assertEqual(resolve_targets(api, "missing"), [])

    def test_handle_passes_through(self):
        handle = SearchApplicationHandle(identity="x", name="X")
        self.assertIs(resolve_targets(DummyAdminApi(_fixture(2)), handle)[0], handle)

    def test_foreign_object_falls_back_to_default(self):
        self.assertEqual([h.name for h in resolve_targets(DummyAdminApi(_fixture(1)), 42)], ["SSA 0"])
        with self.assertRaises(AmbiguousTargetError):
            resolve_targets(DummyAdminApi(_fixture(2)), 42)

    def test_collection_deduplicated(self):
        api = DummyAdminApi(_fixture(2))
        handles = resolve_targets(api, ["SSA 0", "SSA 1", "ssa 0", "missing"])
        self.assertEqual([h.identity for h in handles], ["ssa-0", "ssa-1"])

    def test_ambiguous_item_in_collection_is_skipped(self):
        api = DummyAdminApi(_fixture(2))
        handles = resolve_targets(api, ["SSA 1", 42])
        self.assertEqual([h.identity for h in handles], ["ssa-1"])
