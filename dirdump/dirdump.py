#!/usr/bin/env python3
import logging

from dirdump.errors import InvalidArgument, NotFound
from dirdump.lib.search import paged_search, check_page_size, check_max_results
from dirdump.lib.records import normalize_all
from dirdump.lib.hierarchy import find_topmost
from dirdump.lib.resolver import IdentityResolver
from dirdump.lib import topology
from dirdump.utils.helpers import (
	parse_root_path,
	domain_to_path,
	escape_filter_value,
)
from dirdump.utils.constants import (
	USER,
	GROUP,
	USER_FILTER,
	GROUP_FILTER,
	PROJECTIONS,
	DEFAULT_PAGE_SIZE,
	DEFAULT_MAX_DEPTH,
)

class DirDump:
	"""
	Read-only queries against a directory forest.

	conn is the session provider (dirdump.utils.connections.CONNECTION or any
	object with an open(root_path) method returning a session). Enumerations
	are lazy: nothing touches the directory until the first record is pulled,
	and each search session is closed as soon as its stream ends or is dropped.
	"""
	def __init__(self, conn, args=None):
		self.conn = conn
		self.args = args
		self.page_size = check_page_size(getattr(args, "page_size", None) or DEFAULT_PAGE_SIZE)
		self.skip_malformed = bool(getattr(args, "skip_malformed", False))
		self.max_depth = getattr(args, "max_depth", None) or DEFAULT_MAX_DEPTH

	def _check_roots(self, domain_roots):
		if domain_roots is None:
			return None
		if isinstance(domain_roots, str):
			domain_roots = [domain_roots]
		roots = list(domain_roots)
		for root in roots:
			if not isinstance(root, str):
				raise InvalidArgument(f"Root path must be a string, got {root!r}")
			parse_root_path(root)
		return roots or None

	def _forest_roots(self):
		roots = [domain_to_path(domain.name) for domain in self.list_domains()]
		logging.debug(f"[DirDump] Enumerating forest roots: {', '.join(roots)}")
		return roots

	def _iter_records(self, roots, search_filter, kind, max_count, skip_malformed):
		if roots is None:
			roots = self._forest_roots()
		projection, _ = PROJECTIONS[kind]
		remaining = max_count
		for root in roots:
			logging.debug(f"[DirDump] Searching {kind} entries under {root}")
			# entries skipped downstream must not use up the cap
			bags = paged_search(self.conn, root, search_filter, projection, self.page_size, None if skip_malformed else remaining)
			records = normalize_all(bags, kind, skip_malformed)
			try:
				for record in records:
					yield record
					if remaining:
						remaining -= 1
						if remaining == 0:
							return
			finally:
				records.close()
				bags.close()

	def list_users(self, domain_roots=None, manager_filter=None, max_count=None, skip_malformed=None):
		"""
		Lazily yield UserRecord objects.

		domain_roots: root paths to search; every domain of the forest when omitted
		manager_filter: a manager DN, or "*" (the default) for any user that has a manager
		max_count: total cap across all roots; None or 0 means unbounded
		"""
		roots = self._check_roots(domain_roots)
		max_count = check_max_results(max_count)
		manager = manager_filter if manager_filter is not None else "*"
		if not isinstance(manager, str) or not manager.strip():
			raise InvalidArgument(f"Manager filter must be a distinguished name or '*', got {manager_filter!r}")
		search_filter = USER_FILTER.format(manager=escape_filter_value(manager.strip()))
		logging.debug(f"[DirDump] User filter: {search_filter}")

		if skip_malformed is None:
			skip_malformed = self.skip_malformed
		return self._iter_records(roots, search_filter, USER, max_count, skip_malformed)

	def list_groups(self, domain_roots=None, max_count=None, skip_malformed=None):
		"""Lazily yield GroupRecord objects; same root and cap rules as list_users."""
		roots = self._check_roots(domain_roots)
		max_count = check_max_results(max_count)
		if skip_malformed is None:
			skip_malformed = self.skip_malformed
		return self._iter_records(roots, GROUP_FILTER, GROUP, max_count, skip_malformed)

	def resolve_topmost_manager(self, domain_root=None, start_identifier=None):
		"""Walk the manager chain up from start_identifier (the bound user when omitted)."""
		if domain_root is not None:
			parse_root_path(domain_root)
		if start_identifier is None:
			start_identifier = self.resolve_user_identifier(required=True)
		return find_topmost(self.conn, domain_root, start_identifier, max_depth=self.max_depth)

	def list_domains(self):
		return topology.list_domains(self.conn)

	def list_catalogs(self):
		return topology.list_catalogs(self.conn)

	def default_alias(self):
		domain = getattr(self.conn, "domain", None)
		username = getattr(self.conn, "username", None)
		if not domain or not username:
			return None
		return "%s\\%s" % (domain.split(".")[0].upper(), username)

	def resolve_user_identifier(self, alias=None, required=False):
		"""
		Resolve DOMAIN\\alias (or the bound user) to a DN.

		Returns None when nothing matches, unless required is set, in which case
		NotFound is raised.
		"""
		with self.conn.open(None) as session:
			resolver = IdentityResolver(session)
			dn = resolver.user_dn(alias, fallback_alias=self.default_alias())
		if dn is None and required:
			raise NotFound(f"User {alias or 'for the current session'} not found", identifier=alias)
		return dn
