#!/usr/bin/env python3
import argparse
import unittest
import logging
from unittest.mock import patch

from fakes import FakeSession, FakeProvider, bag, user_entry, green_check

from dirdump.dirdump import DirDump
from dirdump.errors import InvalidArgument, MalformedRecord, NotFound
from dirdump.lib.records import DomainRecord, UserRecord, GroupRecord
from dirdump.utils.constants import USER_PROPERTIES, GROUP_PROPERTIES

logging.getLogger().setLevel(logging.CRITICAL)

CORP = "LDAP://corp.local"
EMEA = "LDAP://emea.corp.local"

def users(prefix, count):
    return [user_entry("CN=%s%d,DC=corp,DC=local" % (prefix, i), memberOf=["CN=G,DC=corp,DC=local"]) for i in range(count)]

class DirDumpTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.args = argparse.Namespace()
        cls.args.page_size = 2
        cls.args.skip_malformed = False

    def setUp(self):
        self.corp = FakeSession(pages=[users("corp", 2), users("corp", 3)[2:]])
        self.emea = FakeSession(pages=[users("emea", 2)], root_dn="DC=emea,DC=corp,DC=local")
        self.provider = FakeProvider(sessions={CORP: self.corp, EMEA: self.emea})
        self.dirdump = DirDump(self.provider, self.args)

    def test_list_users_over_several_roots(self):
        records = list(self.dirdump.list_users([CORP, EMEA]))

        self.assertEqual(len(records), 5)
        self.assertTrue(all(isinstance(r, UserRecord) for r in records))
        self.assertEqual(records[0].identifier, "CN=corp0,DC=corp,DC=local")
        self.assertEqual(records[-1].identifier, "CN=emea1,DC=corp,DC=local")
        self.assertEqual(self.provider.opened, [CORP, EMEA])
        self.assertEqual(self.corp.close_calls, 1)
        self.assertEqual(self.emea.close_calls, 1)
        green_check("Users from every root come out in root order")

    def test_user_query_shape(self):
        list(self.dirdump.list_users([CORP]))
        request = self.corp.requests[0]
        self.assertEqual(request["search_filter"], "(&(objectCategory=Person)(objectClass=user)(manager=*))")
        self.assertEqual(request["attributes"], list(USER_PROPERTIES))
        self.assertEqual(request["paged_size"], 2)

    def test_manager_filter_is_escaped(self):
        list(self.dirdump.list_users([CORP], manager_filter="CN=Boss (HQ),DC=corp,DC=local"))
        self.assertIn("(manager=CN=Boss \\28HQ\\29,DC=corp,DC=local)", self.corp.requests[0]["search_filter"])

    def test_max_count_spans_roots(self):
        records = list(self.dirdump.list_users([CORP, EMEA], max_count=4))

        self.assertEqual(len(records), 4)
        self.assertEqual(self.provider.opened, [CORP, EMEA])
        self.assertEqual(self.emea.close_calls, 1)

    def test_max_count_within_first_root(self):
        records = list(self.dirdump.list_users([CORP, EMEA], max_count=1))

        self.assertEqual(len(records), 1)
        self.assertEqual(self.provider.opened, [CORP])
        self.assertEqual(len(self.corp.requests), 1)
        self.assertEqual(self.corp.close_calls, 1)
        green_check("Cap of one stops after the first record")

    def test_zero_max_count_is_unbounded(self):
        self.assertEqual(len(list(self.dirdump.list_users([CORP, EMEA], max_count=0))), 5)

    def test_invalid_arguments_raise_immediately(self):
        for kwargs in ({"max_count": -1}, {"max_count": "3"}, {"domain_roots": ["not a domain"]},
                       {"domain_roots": [42]}, {"manager_filter": "   "}):
            with self.subTest(**{k: repr(v) for k, v in kwargs.items()}):
                with self.assertRaises(InvalidArgument):
                    self.dirdump.list_users(**kwargs)
        with self.assertRaises(InvalidArgument):
            self.dirdump.list_groups([CORP], max_count=-5)
        self.assertEqual(self.provider.opened, [])

    def test_stopping_early_releases_session(self):
        records = self.dirdump.list_users([CORP, EMEA])
        next(records)
        records.close()
        self.assertEqual(self.corp.close_calls, 1)
        self.assertEqual(self.provider.opened, [CORP])

    def test_malformed_user_aborts_or_is_skipped(self):
        broken = FakeSession(pages=[[users("ok", 1)[0], ("CN=broken", bag(name="broken")), users("late", 1)[0]]])
        provider = FakeProvider(sessions={CORP: broken})

        with self.assertRaises(MalformedRecord):
            list(DirDump(provider, self.args).list_users([CORP]))
        self.assertEqual(broken.close_calls, 1)

        records = list(DirDump(provider, self.args).list_users([CORP], skip_malformed=True))
        self.assertEqual([r.identifier for r in records], ["CN=ok0,DC=corp,DC=local", "CN=late0,DC=corp,DC=local"])
        green_check("Malformed entry aborts by default and is skipped on request")

    def test_skipped_entries_do_not_use_up_cap(self):
        first, second, third = users("ok", 3)
        broken = FakeSession(pages=[[first, ("CN=broken", bag(name="broken")), second, third]])
        provider = FakeProvider(sessions={CORP: broken})

        records = list(DirDump(provider, self.args).list_users([CORP], max_count=2, skip_malformed=True))

        self.assertEqual([r.identifier for r in records], ["CN=ok0,DC=corp,DC=local", "CN=ok1,DC=corp,DC=local"])
        self.assertEqual(broken.close_calls, 1)
        green_check("Cap counts emitted records, not skipped entries")

    def test_list_groups(self):
        groups = FakeSession(pages=[[("CN=Admins,DC=corp,DC=local", bag(distinguishedName="CN=Admins,DC=corp,DC=local", memberOf=["CN=Top,DC=corp,DC=local"], name="Admins"))]])
        provider = FakeProvider(sessions={CORP: groups})

        records = list(DirDump(provider, self.args).list_groups([CORP]))

        self.assertIsInstance(records[0], GroupRecord)
        self.assertEqual(records[0].parent_groups, ["CN=Top,DC=corp,DC=local"])
        self.assertEqual(groups.requests[0]["search_filter"], "(&(objectCategory=group))")
        self.assertEqual(groups.requests[0]["attributes"], list(GROUP_PROPERTIES))

    @patch("dirdump.dirdump.topology.list_domains")
    def test_default_roots_are_forest_domains(self, list_domains):
        list_domains.return_value = [DomainRecord("corp.local", "Windows2016Domain"), DomainRecord("emea.corp.local", "Windows2016Domain", "corp.local")]

        records = self.dirdump.list_users()
        list_domains.assert_not_called()
        self.assertEqual(len(list(records)), 5)
        self.assertEqual(self.provider.opened, [CORP, EMEA])

class DirDumpLookupTests(unittest.TestCase):
    def setUp(self):
        alice = "CN=Alice,DC=corp,DC=local"
        bob = "CN=Bob,DC=corp,DC=local"

        def respond(search_base, search_filter, search_scope):
            if "crossRef" in search_filter:
                return []
            if "(samaccountname=alice)" in search_filter:
                return [(alice, bag(distinguishedName=alice))]
            if "(distinguishedName=%s)" % alice in search_filter:
                return [(alice, bag(manager=bob))]
            if "(distinguishedName=%s)" % bob in search_filter:
                return [(bob, bag())]
            return []

        self.alice, self.bob = alice, bob
        self.session = FakeSession(responder=respond, identity="CORP\\alice")
        self.provider = FakeProvider(self.session, username="alice")
        self.dirdump = DirDump(self.provider)

    def test_resolve_user_identifier(self):
        self.assertEqual(self.dirdump.resolve_user_identifier("CORP\\alice"), self.alice)
        self.assertIsNone(self.dirdump.resolve_user_identifier("CORP\\nobody"))
        with self.assertRaises(NotFound):
            self.dirdump.resolve_user_identifier("CORP\\nobody", required=True)
        with self.assertRaises(InvalidArgument):
            self.dirdump.resolve_user_identifier("alice")

    def test_topmost_manager_of_bound_user(self):
        self.assertEqual(self.dirdump.resolve_topmost_manager(), self.bob)
        self.assertEqual(self.session.close_calls, 2)

    def test_topmost_manager_from_start(self):
        self.assertEqual(self.dirdump.resolve_topmost_manager(start_identifier=self.bob), self.bob)

    def test_default_alias(self):
        self.assertEqual(self.dirdump.default_alias(), "CORP\\alice")

if __name__ == '__main__':
    unittest.main(verbosity=2)
