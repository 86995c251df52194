#!/usr/bin/env python3
import logging

from ldap3 import BASE

from dirdump.lib.search import find_one, iter_pages
from dirdump.lib.records import DomainRecord, CatalogRecord, values_of, to_text
from dirdump.utils.helpers import parent_dn, rdn_value
from dirdump.utils.constants import (
	DEFAULT_PAGE_SIZE,
	DOMAIN_CROSSREF_FILTER,
	GLOBAL_CATALOG_FILTER,
	DOMAIN_FUNCTIONAL_LEVELS,
	MIXED_DOMAIN_MODE,
	UNKNOWN_DOMAIN_MODE,
)

def first_value(bag, name):
	if not bag:
		return None
	values = values_of(bag, name)
	return to_text(values[0]) if values else None

def search_all(session, search_base, search_filter, attributes, page_size=DEFAULT_PAGE_SIZE):
	"""Collect every (dn, bag) of a small configuration-partition search."""
	return [entry for page in iter_pages(session, search_base, search_filter, attributes, page_size) for entry in page]

def resolve_domain_mode(behavior_version, mixed=None):
	if behavior_version is None:
		return UNKNOWN_DOMAIN_MODE
	try:
		level = int(behavior_version)
	except (TypeError, ValueError):
		return UNKNOWN_DOMAIN_MODE
	if level == 0 and mixed is not None and str(mixed) == "1":
		return MIXED_DOMAIN_MODE
	return DOMAIN_FUNCTIONAL_LEVELS.get(level, UNKNOWN_DOMAIN_MODE)

def read_domains(session):
	partitions = "CN=Partitions,%s" % session.configuration_naming_context
	entries = search_all(session, partitions, DOMAIN_CROSSREF_FILTER, ["dnsRoot", "nCName", "trustParent", "msDS-Behavior-Version"])

	names = {}
	for dn, bag in entries:
		names[dn.lower()] = first_value(bag, "dnsRoot")

	own_context = (session.default_naming_context or "").lower()
	domains = []
	for dn, bag in entries:
		name = first_value(bag, "dnsRoot")
		naming_context = first_value(bag, "nCName")
		behavior_version = first_value(bag, "msDS-Behavior-Version")
		mixed = None
		if naming_context and naming_context.lower() == own_context:
			head = find_one(session, naming_context, "(objectClass=*)", ["msDS-Behavior-Version", "nTMixedDomain"], search_scope=BASE, tolerate_missing=True)
			behavior_version = first_value(head, "msDS-Behavior-Version") or behavior_version
			mixed = first_value(head, "nTMixedDomain")

		trust_parent = first_value(bag, "trustParent")
		parent_name = names.get(trust_parent.lower()) if trust_parent else None
		if trust_parent and parent_name is None:
			logging.debug(f"[Topology] Parent crossRef {trust_parent} of {name} not found")

		domains.append(DomainRecord(name, resolve_domain_mode(behavior_version, mixed), parent_name))
	return domains

def read_catalogs(session):
	sites = "CN=Sites,%s" % session.configuration_naming_context
	entries = search_all(session, sites, GLOBAL_CATALOG_FILTER, ["distinguishedName"])

	catalogs = []
	for dn, _ in entries:
		# CN=NTDS Settings,CN=<server>,CN=Servers,CN=<site>,CN=Sites,...
		server_dn = parent_dn(dn)
		site_name = rdn_value(dn, 3)
		server = find_one(session, server_dn, "(objectClass=*)", ["dNSHostName", "serverReference"], search_scope=BASE, tolerate_missing=True)
		name = first_value(server, "dNSHostName") or rdn_value(dn, 1)

		os_version = None
		computer_dn = first_value(server, "serverReference")
		if computer_dn:
			computer = find_one(session, computer_dn, "(objectClass=*)", ["operatingSystemVersion"], search_scope=BASE, tolerate_missing=True)
			os_version = first_value(computer, "operatingSystemVersion")
		if os_version is None:
			logging.debug(f"[Topology] Operating system version of {name} not readable from this server")

		catalogs.append(CatalogRecord(name, site_name, os_version))
	return catalogs

def list_domains(provider, root_path=None):
	"""Every domain of the forest the default session belongs to, in directory order."""
	with provider.open(root_path) as session:
		domains = read_domains(session)
	logging.debug(f"[Topology] Found {len(domains)} domain(s)")
	return domains

def list_catalogs(provider, root_path=None):
	"""Every global catalog server of the forest."""
	with provider.open(root_path) as session:
		catalogs = read_catalogs(session)
	logging.debug(f"[Topology] Found {len(catalogs)} global catalog(s)")
	return catalogs
