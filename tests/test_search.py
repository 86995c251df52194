#!/usr/bin/env python3
import unittest
import logging

from fakes import FakeSession, FakeProvider, user_entry, green_check

from dirdump.errors import InvalidArgument, QueryFailed
from dirdump.lib.search import paged_search, find_one, check_max_results, iter_pages

logging.getLogger().setLevel(logging.CRITICAL)

ROOT = "LDAP://corp.local"
FILTER = "(&(objectCategory=group))"

class PagedSearchTests(unittest.TestCase):
    def setUp(self):
        self.entries = [user_entry("CN=u%d,DC=corp,DC=local" % i) for i in range(3)]
        self.session = FakeSession(pages=[self.entries[:2], self.entries[2:]])
        self.provider = FakeProvider(self.session)

    def test_pages_through_every_entry_in_order(self):
        bags = list(paged_search(self.provider, ROOT, FILTER, ["name"], page_size=2))

        self.assertEqual([b["distinguishedName"][0] for b in bags], [dn for dn, _ in self.entries])
        self.assertEqual(len(self.session.requests), 2)
        self.assertEqual(self.session.requests[0]["cookie"], None)
        self.assertEqual(self.session.requests[1]["cookie"], 1)
        self.assertTrue(all(r["paged_size"] == 2 for r in self.session.requests))
        self.assertEqual(self.session.close_calls, 1)
        green_check("Two page requests for three entries with a page size of two")

    def test_search_base_is_root_of_session(self):
        list(paged_search(self.provider, ROOT, FILTER, ["name"], page_size=2))
        self.assertEqual(self.provider.opened, [ROOT])
        self.assertEqual(self.session.requests[0]["search_base"], "DC=corp,DC=local")
        self.assertEqual(self.session.requests[0]["search_filter"], FILTER)
        self.assertEqual(self.session.requests[0]["attributes"], ["name"])

    def test_nothing_happens_until_first_pull(self):
        results = paged_search(self.provider, ROOT, FILTER, ["name"], page_size=2)
        self.assertEqual(self.provider.opened, [])
        self.assertEqual(self.session.requests, [])
        next(results)
        self.assertEqual(self.provider.opened, [ROOT])
        results.close()

    def test_max_results_stops_without_next_page(self):
        bags = list(paged_search(self.provider, ROOT, FILTER, ["name"], page_size=2, max_results=2))

        self.assertEqual(len(bags), 2)
        self.assertEqual(len(self.session.requests), 1)
        self.assertEqual(self.session.close_calls, 1)
        green_check("Result cap ends the search after the first page")

    def test_zero_max_results_is_unbounded(self):
        bags = list(paged_search(self.provider, ROOT, FILTER, ["name"], page_size=2, max_results=0))
        self.assertEqual(len(bags), 3)

    def test_cap_larger_than_result_set(self):
        bags = list(paged_search(self.provider, ROOT, FILTER, ["name"], page_size=2, max_results=10))
        self.assertEqual(len(bags), 3)

    def test_empty_result(self):
        session = FakeSession(pages=[[]])
        bags = list(paged_search(FakeProvider(session), ROOT, FILTER, ["name"], page_size=2))
        self.assertEqual(bags, [])
        self.assertEqual(session.close_calls, 1)

    def test_session_closed_when_consumer_stops_early(self):
        results = paged_search(self.provider, ROOT, FILTER, ["name"], page_size=2)
        next(results)
        self.assertEqual(self.session.close_calls, 0)
        results.close()

        self.assertEqual(self.session.close_calls, 1)
        self.assertEqual(len(self.session.requests), 1)
        green_check("Abandoned enumeration releases its session")

    def test_session_closed_when_follow_up_page_fails(self):
        session = FakeSession(pages=[self.entries[:2], self.entries[2:]], fail_on_page=1,
                              error=QueryFailed("server went away"))
        results = paged_search(FakeProvider(session), ROOT, FILTER, ["name"], page_size=2)

        received = []
        with self.assertRaises(QueryFailed):
            for bag in results:
                received.append(bag)

        self.assertEqual(len(received), 2)
        self.assertEqual(session.close_calls, 1)
        green_check("Failed follow-up page surfaces after the first page and closes the session")

    def test_invalid_arguments_raise_before_opening(self):
        for kwargs in ({"page_size": 0}, {"page_size": -5}, {"page_size": "10"},
                       {"max_results": -1}, {"max_results": "5"}, {"max_results": 2.5}):
            with self.subTest(**kwargs):
                with self.assertRaises(InvalidArgument):
                    paged_search(self.provider, ROOT, FILTER, ["name"], **kwargs)
        with self.assertRaises(InvalidArgument):
            paged_search(self.provider, ROOT, "", ["name"])
        with self.assertRaises(InvalidArgument):
            paged_search(self.provider, ROOT, FILTER, [])
        self.assertEqual(self.provider.opened, [])

    def test_invalid_argument_is_a_value_error(self):
        with self.assertRaises(ValueError):
            check_max_results(-3)

class IterPagesTests(unittest.TestCase):
    def test_one_request_per_pulled_page(self):
        entries = [user_entry("CN=u%d,DC=corp,DC=local" % i) for i in range(3)]
        session = FakeSession(pages=[entries[:2], entries[2:]])

        pages = iter_pages(session, "DC=corp,DC=local", FILTER, ["name"], page_size=2)
        self.assertEqual(next(pages), entries[:2])
        self.assertEqual(len(session.requests), 1)
        self.assertEqual(next(pages), entries[2:])
        self.assertEqual([r["cookie"] for r in session.requests], [None, 1])
        self.assertEqual(list(pages), [])
        self.assertEqual(len(session.requests), 2)

class FindOneTests(unittest.TestCase):
    def test_single_request_with_size_limit(self):
        dn, entry = user_entry("CN=jdoe,DC=corp,DC=local")
        session = FakeSession(responder=lambda base, flt, scope: [(dn, entry)])

        result = find_one(session, "DC=corp,DC=local", "(cn=jdoe)", ("manager",))

        self.assertIs(result, entry)
        self.assertEqual(len(session.requests), 1)
        self.assertEqual(session.requests[0]["size_limit"], 1)
        self.assertEqual(session.requests[0]["attributes"], ["manager"])

    def test_no_match_returns_none(self):
        session = FakeSession(responder=lambda base, flt, scope: [])
        self.assertIsNone(find_one(session, "DC=corp,DC=local", "(cn=nobody)", ["manager"]))

if __name__ == '__main__':
    unittest.main(verbosity=2)
