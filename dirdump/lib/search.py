#!/usr/bin/env python3
import logging

from ldap3 import SUBTREE

from dirdump.errors import InvalidArgument
from dirdump.utils.constants import DEFAULT_PAGE_SIZE

def check_page_size(page_size):
	if isinstance(page_size, bool) or not isinstance(page_size, int) or page_size <= 0:
		raise InvalidArgument(f"Page size must be a positive integer, got {page_size!r}")
	return page_size

def check_max_results(max_results):
	"""None and 0 both mean unbounded; anything else must be a positive int."""
	if max_results is None:
		return None
	if isinstance(max_results, bool) or not isinstance(max_results, int) or max_results < 0:
		raise InvalidArgument(f"Maximum result count must be a non-negative integer, got {max_results!r}")
	return max_results or None

def iter_pages(session, search_base, search_filter, attributes, page_size=DEFAULT_PAGE_SIZE, search_scope=SUBTREE):
	"""Follow the paging cookie on an open session, yielding one list of (dn, bag) per page."""
	cookie = None
	while True:
		entries, cookie = session.search_page(
			search_base,
			search_filter,
			attributes,
			search_scope=search_scope,
			paged_size=page_size,
			cookie=cookie,
		)
		yield entries
		if not cookie:
			return

def paged_search_generator(provider,
						   root_path,
						   search_filter,
						   attributes,
						   page_size=DEFAULT_PAGE_SIZE,
						   max_results=None,
						   search_scope=SUBTREE):
	"""
	Lazily yield attribute bags for a subtree search rooted at root_path.

	The session is opened on the first pull and released on every exit path:
	exhaustion, the max_results cap, an error, or the caller closing the
	generator early. Records come out in server order, one page request per
	page_size entries.
	"""
	session = provider.open(root_path)
	try:
		search_base = session.root_dn
		total_results = 0
		pages = 0
		for entries in iter_pages(session, search_base, search_filter, attributes, page_size, search_scope):
			pages += 1
			for _, bag in entries:
				yield bag
				total_results += 1
				if max_results and total_results >= max_results:
					logging.debug(f"[PagedSearch] Reached cap of {max_results} results after {pages} page(s)")
					return
		logging.debug(f"[PagedSearch] Retrieved {total_results} entries in {pages} page(s) from {search_base}")
	finally:
		session.close()

def paged_search(provider,
				 root_path,
				 search_filter,
				 attributes,
				 page_size=DEFAULT_PAGE_SIZE,
				 max_results=None,
				 search_scope=SUBTREE):
	"""Validate arguments now and return the lazy result stream."""
	if not search_filter or not isinstance(search_filter, str):
		raise InvalidArgument("search_filter must be a non-empty string")
	if not attributes:
		raise InvalidArgument("attribute projection must not be empty")
	return paged_search_generator(
		provider,
		root_path,
		search_filter,
		list(attributes),
		check_page_size(page_size),
		check_max_results(max_results),
		search_scope,
	)

def find_one(session, search_base, search_filter, attributes, search_scope=SUBTREE, tolerate_missing=False):
	"""Single-result lookup on an open session; returns the first bag or None."""
	entries, _ = session.search_page(
		search_base,
		search_filter,
		list(attributes),
		search_scope=search_scope,
		size_limit=1,
		tolerate_missing=tolerate_missing,
	)
	if not entries:
		return None
	return entries[0][1]
