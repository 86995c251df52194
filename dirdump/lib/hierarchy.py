#!/usr/bin/env python3
import logging

from ldap3 import SUBTREE

from dirdump.errors import NotFound, CycleDetected, InvalidArgument
from dirdump.lib.search import find_one
from dirdump.lib.records import values_of, to_text
from dirdump.utils.helpers import escape_filter_value
from dirdump.utils.constants import (
	USER_BY_DN_FILTER,
	MANAGER_ATTRIBUTE,
	DEFAULT_MAX_DEPTH,
)

def walk_chain(session, start_identifier, relationship=MANAGER_ATTRIBUTE, search_filter=USER_BY_DN_FILTER, max_depth=DEFAULT_MAX_DEPTH):
	"""
	Follow a parent-pointer attribute from start_identifier until an entry has none.

	Returns the visited identifiers in order; the last one is the root of the chain.

	Raises:
		NotFound: an identifier in the chain does not resolve to an entry
		CycleDetected: an identifier repeats or the chain grows past max_depth
	"""
	chain = []
	visited = set()
	current = start_identifier
	while current:
		key = current.lower()
		if key in visited:
			raise CycleDetected(f"{relationship} chain loops back to {current}", chain + [current])
		if len(chain) >= max_depth:
			raise CycleDetected(f"{relationship} chain is longer than {max_depth} entries", chain)
		visited.add(key)

		bag = find_one(session, session.root_dn, search_filter.format(dn=escape_filter_value(current)), [relationship], search_scope=SUBTREE)
		if bag is None:
			raise NotFound(f"{current} not found under {session.root_dn}", identifier=current)
		chain.append(current)

		parents = values_of(bag, relationship)
		current = to_text(parents[0]) if parents else None
		if current:
			logging.debug(f"[Hierarchy] {chain[-1]} -> {current}")

	return chain

def find_topmost(provider, root_path, start_identifier, max_depth=DEFAULT_MAX_DEPTH):
	"""Return the topmost manager above start_identifier, using one session for the whole walk."""
	if not start_identifier:
		raise InvalidArgument("A start identifier is required")
	if isinstance(max_depth, bool) or not isinstance(max_depth, int) or max_depth <= 0:
		raise InvalidArgument(f"Maximum depth must be a positive integer, got {max_depth!r}")

	with provider.open(root_path) as session:
		chain = walk_chain(session, start_identifier, max_depth=max_depth)
	logging.debug(f"[Hierarchy] Walked {len(chain)} entries from {start_identifier}")
	return chain[-1]
