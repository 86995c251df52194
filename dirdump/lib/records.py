#!/usr/bin/env python3
import logging
import datetime

from dirdump.errors import MalformedRecord, InvalidArgument
from dirdump.utils.constants import (
	PROJECTIONS,
	IDENTIFIER_ATTRIBUTE,
	USER,
	GROUP,
)

class Record:
	_fields = ()

	def to_dict(self):
		raise NotImplementedError

	def __eq__(self, other):
		if not isinstance(other, self.__class__):
			return NotImplemented
		return self.to_dict() == other.to_dict()

	def __repr__(self):
		values = ", ".join("%s=%r" % (name, getattr(self, name)) for name in self._fields)
		return "%s(%s)" % (self.__class__.__name__, values)

class UserRecord(Record):
	_fields = ("identifier", "attributes", "group_memberships")

	def __init__(self, identifier, attributes=None, group_memberships=None):
		self.identifier = identifier
		self.attributes = dict(attributes or {})
		self.group_memberships = list(group_memberships or [])

	def to_dict(self):
		return {
			"UserDN": self.identifier,
			"Attributes": dict(self.attributes),
			"GroupMemberships": list(self.group_memberships),
		}

class GroupRecord(Record):
	_fields = ("identifier", "attributes", "parent_groups")

	def __init__(self, identifier, attributes=None, parent_groups=None):
		self.identifier = identifier
		self.attributes = dict(attributes or {})
		self.parent_groups = list(parent_groups or [])

	def to_dict(self):
		return {
			"GroupDN": self.identifier,
			"Attributes": dict(self.attributes),
			"MemberOfGroupDNs": list(self.parent_groups),
		}

class DomainRecord(Record):
	_fields = ("name", "mode", "parent_name")

	def __init__(self, name, mode, parent_name=None):
		self.name = name
		self.mode = mode
		self.parent_name = parent_name

	def to_dict(self):
		return {"Name": self.name, "Mode": self.mode, "ParentName": self.parent_name}

class CatalogRecord(Record):
	_fields = ("name", "site_name", "os_version")

	def __init__(self, name, site_name=None, os_version=None):
		self.name = name
		self.site_name = site_name
		self.os_version = os_version

	def to_dict(self):
		return {"Name": self.name, "SiteName": self.site_name, "OSVersion": self.os_version}

RECORD_TYPES = {
	USER: UserRecord,
	GROUP: GroupRecord,
}

def to_text(value):
	if isinstance(value, str):
		return value
	if isinstance(value, (bytes, bytearray)):
		try:
			return bytes(value).decode("utf-8")
		except UnicodeDecodeError:
			return bytes(value).hex()
	if isinstance(value, datetime.datetime):
		return value.isoformat()
	return str(value)

def values_of(bag, name):
	"""All values of an attribute as a list, [] when absent."""
	values = bag.get(name)
	if values is None:
		# plain dicts from callers other than the session layer
		for key in bag:
			if key.lower() == name.lower():
				values = bag[key]
				break
	if values is None:
		return []
	if not isinstance(values, (list, tuple)):
		return [values]
	return list(values)

def normalize(bag, kind):
	"""
	Convert a raw attribute bag into a UserRecord or GroupRecord.

	Every attribute except the relationship attribute keeps its first value as a
	string; attributes without values are left out. The relationship attribute
	(memberOf) keeps all of its values in server order. Group records only keep
	attributes of the group projection.

	Raises:
		MalformedRecord: the identifier attribute is missing or empty
		InvalidArgument: unknown entity kind
	"""
	if kind not in PROJECTIONS:
		raise InvalidArgument(f"Unknown entity kind: {kind}")
	projection, relationship = PROJECTIONS[kind]

	identifiers = values_of(bag, IDENTIFIER_ATTRIBUTE)
	if not identifiers or not to_text(identifiers[0]):
		raise MalformedRecord(f"{kind} entry has no {IDENTIFIER_ATTRIBUTE}", kind=kind, attributes=dict(bag))
	identifier = to_text(identifiers[0])

	if kind == GROUP:
		names = [name for name in projection if name.lower() != relationship.lower()]
	else:
		names = [name for name in bag if name.lower() != relationship.lower()]

	attributes = {}
	for name in names:
		values = values_of(bag, name)
		if values:
			attributes[name] = to_text(values[0])

	related = [to_text(value) for value in values_of(bag, relationship)]
	return RECORD_TYPES[kind](identifier, attributes, related)

def normalize_all(bags, kind, skip_malformed=False):
	"""Lazily normalize a stream of bags, aborting on the first malformed entry unless asked to skip."""
	for bag in bags:
		try:
			yield normalize(bag, kind)
		except MalformedRecord as e:
			if not skip_malformed:
				raise
			logging.warning(f"[Normalize] Skipping malformed {kind} entry: {e}")
