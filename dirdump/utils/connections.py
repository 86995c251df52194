import ssl
import logging

import ldap3
from ldap3.core.exceptions import (
	LDAPException,
	LDAPSocketOpenError,
	LDAPResponseTimeoutError,
)
from ldap3.core.results import (
	RESULT_SUCCESS,
	RESULT_SIZE_LIMIT_EXCEEDED,
	RESULT_TIME_LIMIT_EXCEEDED,
	RESULT_REFERRAL,
	RESULT_NO_SUCH_OBJECT,
)
from ldap3.utils.ciDict import CaseInsensitiveDict

from dirdump.errors import (
	SessionError,
	DirectoryUnavailable,
	QueryFailed,
	QueryTimeout,
)
from dirdump.utils.helpers import (
	parse_root_path,
	dn2domain,
	domain2dn,
	host2ip,
	is_valid_fqdn,
)
from dirdump.utils.constants import (
	DEFAULT_PAGE_TIMEOUT,
	DEFAULT_CONNECT_TIMEOUT,
	LDAP_ERROR_STATUS,
	PAGED_RESULTS_OID,
)

class Session:
	"""
	One bound ldap3 connection scoped to a search root.

	Every search or walk owns exactly one Session and closes it when done.
	Entries come back as (dn, bag) tuples, bag being a case-insensitive
	mapping of attribute name to a list of values.
	"""
	def __init__(self, connection, root_dn, root_path=None, page_timeout=DEFAULT_PAGE_TIMEOUT):
		self.connection = connection
		self.root_dn = root_dn
		self.root_path = root_path
		self.page_timeout = page_timeout
		self.closed = False

	def __enter__(self):
		return self

	def __exit__(self, exc_type, exc, tb):
		self.close()

	def _root_dse(self, attribute):
		info = getattr(self.connection.server, "info", None)
		if not info or not info.other:
			return None
		values = info.other.get(attribute)
		return values[0] if values else None

	@property
	def default_naming_context(self):
		return self._root_dse("defaultNamingContext") or self.root_dn

	@property
	def configuration_naming_context(self):
		context = self._root_dse("configurationNamingContext")
		if not context:
			raise QueryFailed("Server did not publish a configurationNamingContext", search_base="")
		return context

	def who_am_i(self):
		try:
			identity = self.connection.extend.standard.who_am_i()
		except LDAPException as e:
			logging.debug(f"[Session] whoami failed: {e}")
			return None
		if not identity:
			return None
		# u:DOMAIN\alias or dn:CN=...
		return identity.split(":", 1)[1] if ":" in identity else identity

	def search_page(self, search_base, search_filter, attributes, search_scope=ldap3.SUBTREE, paged_size=None, cookie=None, size_limit=0, tolerate_missing=False):
		"""
		Issue exactly one search request.

		Returns:
			(entries, cookie): entries is a list of (dn, CaseInsensitiveDict) tuples,
			cookie is the paging cookie for the next page or None when done

		Raises:
			QueryTimeout: the server or the client page timeout expired
			QueryFailed: the request was rejected or the connection dropped
		"""
		if self.closed:
			raise QueryFailed("Session is closed", search_base=search_base, search_filter=search_filter)

		search_kwargs = {
			"search_base": search_base,
			"search_filter": search_filter,
			"search_scope": search_scope,
			"attributes": list(attributes),
			"size_limit": size_limit,
			"time_limit": self.page_timeout,
		}
		if paged_size:
			search_kwargs["paged_size"] = paged_size
			search_kwargs["paged_cookie"] = cookie

		logging.debug(f"[Session] Search base={search_base} filter={search_filter} page_size={paged_size}")
		try:
			self.connection.search(**search_kwargs)
		except LDAPResponseTimeoutError as e:
			raise QueryTimeout(f"Search timed out after {self.page_timeout} seconds: {e}", search_base, search_filter) from e
		except LDAPException as e:
			raise QueryFailed(f"Search failed: {e}", search_base, search_filter) from e

		result = self.connection.result or {}
		code = result.get("result", RESULT_SUCCESS)
		if code == RESULT_TIME_LIMIT_EXCEEDED:
			raise QueryTimeout(f"Search exceeded the server time limit of {self.page_timeout} seconds", search_base, search_filter, code)
		if code in (RESULT_NO_SUCH_OBJECT, RESULT_REFERRAL) and tolerate_missing:
			logging.debug(f"[Session] {result.get('description')} for {search_base}, treating as empty")
			return [], None
		if code not in (RESULT_SUCCESS, RESULT_SIZE_LIMIT_EXCEEDED):
			raise QueryFailed(f"Search failed: {result.get('description')} {result.get('message', '')}".strip(), search_base, search_filter, code)

		entries = []
		for entry in self.connection.response or []:
			if entry.get("type") != "searchResEntry":
				continue
			bag = CaseInsensitiveDict()
			for name, value in entry.get("attributes", {}).items():
				bag[name] = value if isinstance(value, list) else [value]
			entries.append((entry.get("dn"), bag))

		next_cookie = None
		if paged_size:
			try:
				next_cookie = result["controls"][PAGED_RESULTS_OID]["value"]["cookie"]
			except (KeyError, TypeError):
				next_cookie = None
		return entries, next_cookie or None

	def close(self):
		if self.closed:
			return
		self.closed = True
		try:
			if self.connection.bound:
				self.connection.unbind()
				logging.debug(f"[Session] Connection to {self.root_path or self.root_dn} closed")
		except LDAPException as e:
			logging.debug(f"[Session] Error closing connection: {e}")

class CONNECTION:
	"""Session provider: opens bound ldap3 sessions for search roots."""
	def __init__(self, args):
		self.args = args
		self.username = args.username
		self.password = args.password
		self.domain = args.domain
		self.lmhash = args.lmhash
		self.nthash = args.nthash
		self.hashes = getattr(args, "hashes", None)
		self.use_kerberos = getattr(args, "use_kerberos", False)
		self.use_simple_auth = getattr(args, "use_simple_auth", False)
		self.use_ldap = getattr(args, "use_ldap", False)
		self.use_ldaps = getattr(args, "use_ldaps", False)
		self.use_gc = getattr(args, "use_gc", False)
		self.use_gc_ldaps = getattr(args, "use_gc_ldaps", False)
		self.port = getattr(args, "port", None)
		self.nameserver = getattr(args, "nameserver", None)
		self.page_timeout = getattr(args, "page_timeout", None) or DEFAULT_PAGE_TIMEOUT
		self.connect_timeout = getattr(args, "connect_timeout", None) or DEFAULT_CONNECT_TIMEOUT
		self.ldap_address = args.ldap_address

		# if no protocol is specified, use ldaps
		if not self.use_ldap and not self.use_ldaps and not self.use_gc and not self.use_gc_ldaps:
			self.use_ldaps = True

		self.auth_method = ldap3.NTLM
		if self.use_simple_auth:
			self.auth_method = ldap3.SIMPLE
		elif self.use_kerberos:
			self.auth_method = ldap3.SASL

		if not self.domain and self.ldap_address and is_valid_fqdn(self.ldap_address):
			self.domain = self.ldap_address

	def default_root_path(self):
		if self.domain:
			return domain2dn(self.domain)
		return None

	def get_proto(self):
		if self.use_gc_ldaps:
			return "GCssl", 3269, True
		if self.use_gc:
			return "GC", 3268, False
		if self.use_ldap:
			return "LDAP", 389, False
		return "LDAPS", 636, True

	def _target_for(self, host, root_dn):
		"""Pick the server for a root: explicit host, else configured address for our own domain, else the domain itself."""
		own_domain = self.domain.lower() if self.domain else None
		if host:
			if self.ldap_address and own_domain and host.lower() == own_domain:
				return self.ldap_address
			return host
		if self.ldap_address and (not root_dn or not own_domain or dn2domain(root_dn) == own_domain):
			return self.ldap_address
		domain = dn2domain(root_dn) if root_dn else None
		if not domain:
			raise SessionError(f"Cannot determine a server for root {root_dn}", root_dn)
		return domain

	def _bind_user(self):
		if not self.username:
			return None
		if self.auth_method == ldap3.NTLM:
			return '%s\\%s' % (self.domain, self.username)
		if self.auth_method == ldap3.SIMPLE or self.auth_method == ldap3.SASL:
			return '{}@{}'.format(self.username, self.domain)
		return self.username

	@staticmethod
	def discard_connection(ldap_session):
		if ldap_session is None:
			return
		try:
			ldap_session.unbind()
		except LDAPException as e:
			logging.debug(f"[Connection] Error releasing failed connection: {e}")

	def init_ldap_connection(self, target, root_path=None):
		proto, default_port, use_ssl = self.get_proto()
		address = target
		if not self.use_kerberos and is_valid_fqdn(target):
			address = host2ip(target, nameserver=self.nameserver, dns_timeout=self.connect_timeout)
			if not address:
				raise DirectoryUnavailable(f"Couldn't resolve {target}", root_path)

		ldap_server_kwargs = {
			"host": address,
			"port": self.port or default_port,
			"use_ssl": use_ssl,
			"get_info": ldap3.DSA,
			"connect_timeout": self.connect_timeout,
		}
		if use_ssl:
			ldap_server_kwargs["tls"] = ldap3.Tls(validate=ssl.CERT_NONE, version=ssl.PROTOCOL_TLSv1_2)

		ldap_connection_kwargs = {
			"raise_exceptions": False,
			"receive_timeout": self.page_timeout,
			"auto_referrals": False,
		}
		user = self._bind_user()
		if user is None:
			logging.debug("No credentials supplied. Using ANONYMOUS access")
			ldap_connection_kwargs["authentication"] = ldap3.ANONYMOUS
		elif self.use_kerberos:
			ldap_connection_kwargs["authentication"] = ldap3.SASL
			ldap_connection_kwargs["sasl_mechanism"] = ldap3.KERBEROS
		else:
			ldap_connection_kwargs["user"] = user
			ldap_connection_kwargs["authentication"] = self.auth_method
			if self.hashes is not None:
				ldap_connection_kwargs["password"] = '{}:{}'.format(self.lmhash, self.nthash)
			else:
				ldap_connection_kwargs["password"] = self.password

		logging.debug("Connecting to %s, Port: %s, SSL: %s, Protocol: %s" % (address, ldap_server_kwargs["port"], use_ssl, proto))
		ldap_server = ldap3.Server(**ldap_server_kwargs)
		ldap_session = None
		try:
			ldap_session = ldap3.Connection(ldap_server, **ldap_connection_kwargs)
			bind = ldap_session.bind()
		except LDAPSocketOpenError as e:
			self.discard_connection(ldap_session)
			raise DirectoryUnavailable(f"Connection to {target} failed: {e}", root_path) from e
		except LDAPException as e:
			self.discard_connection(ldap_session)
			raise SessionError(f"Authentication to {target} failed: {e}", root_path) from e

		if not bind:
			result = ldap_session.result or {}
			self.discard_connection(ldap_session)
			message = result.get("message") or ""
			parts = message.split(",")
			error_code = parts[2].replace("data", "").strip() if len(parts) > 2 else None
			error_status = LDAP_ERROR_STATUS.get(error_code) if error_code else None
			if error_status:
				raise SessionError("Bind not successful - %s [%s]" % (result.get("description"), error_status), root_path)
			raise SessionError(f"Bind not successful - {result.get('description')} {message}".strip(), root_path)

		logging.debug("Bind SUCCESS!")
		return ldap_server, ldap_session

	def open(self, root_path=None):
		"""
		Open a bound session scoped to root_path.

		Raises:
			InvalidArgument: the root path cannot be parsed
			DirectoryUnavailable: the server cannot be reached
			SessionError: binding failed
		"""
		if root_path:
			host, root_dn = parse_root_path(root_path)
		else:
			host, root_dn = None, self.default_root_path()

		target = self._target_for(host, root_dn)
		logging.debug(f"[Connection] Opening session for {root_path or root_dn} on {target}")
		_, ldap_session = self.init_ldap_connection(target, root_path)

		session = Session(ldap_session, root_dn, root_path=root_path, page_timeout=self.page_timeout)
		if not session.root_dn:
			session.root_dn = session.default_naming_context
		if not self.domain and session.root_dn:
			self.domain = dn2domain(session.root_dn)
		return session
