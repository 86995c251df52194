#!/usr/bin/env python3
import logging

from ldap3 import SUBTREE, LEVEL

from dirdump.lib.search import find_one
from dirdump.lib.records import values_of, to_text
from dirdump.utils.helpers import (
	parse_alias,
	validate_netbios_name,
	escape_filter_value,
)
from dirdump.utils.constants import (
	IDENTIFIER_ATTRIBUTE,
	NETBIOS_CROSSREF_FILTER,
	USER_BY_ALIAS_FILTER,
)

class IdentityResolver:
	"""
	Resolves DOMAIN\\alias identities to distinguished names.

	The NetBIOS part is mapped to a domain naming context through the crossRef
	objects of the configuration partition; when that mapping is unknown the
	session's own domain is searched.
	"""
	def __init__(self, session):
		self.session = session

	def netbios_to_dn(self, netbios_name):
		"""NetBIOS domain name -> naming context DN, or None when no crossRef matches."""
		validate_netbios_name(netbios_name)
		partitions = "CN=Partitions,%s" % self.session.configuration_naming_context
		bag = find_one(
			self.session,
			partitions,
			NETBIOS_CROSSREF_FILTER.format(netbios=escape_filter_value(netbios_name)),
			["nCName"],
			search_scope=LEVEL,
		)
		if bag is None:
			return None
		values = values_of(bag, "nCName")
		return to_text(values[0]) if values else None

	def current_alias(self, fallback=None):
		identity = self.session.who_am_i()
		if identity and "\\" in identity:
			return identity
		if identity:
			logging.debug(f"[Resolver] Session identity {identity} is not in domain\\alias form")
		return fallback

	def user_dn(self, alias=None, fallback_alias=None):
		"""
		Resolve alias (or the bound identity when alias is None) to a user DN.

		Returns:
			the DN, or None when no user matches

		Raises:
			InvalidArgument: the alias or its NetBIOS part is malformed
		"""
		if alias is None:
			alias = self.current_alias(fallback_alias)
		netbios_name, account = parse_alias(alias)

		search_base = self.session.default_naming_context
		naming_context = self.netbios_to_dn(netbios_name)
		if naming_context:
			search_base = naming_context
		else:
			logging.debug(f"[Resolver] No crossRef for {netbios_name}, searching {search_base}")

		bag = find_one(
			self.session,
			search_base,
			USER_BY_ALIAS_FILTER.format(alias=escape_filter_value(account)),
			[IDENTIFIER_ATTRIBUTE, "samaccountname"],
			search_scope=SUBTREE,
			tolerate_missing=True,
		)
		if bag is None:
			logging.debug(f"[Resolver] {alias} not found under {search_base}")
			return None
		values = values_of(bag, IDENTIFIER_ATTRIBUTE)
		return to_text(values[0]) if values else None
