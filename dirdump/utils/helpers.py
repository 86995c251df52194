import re
import logging
import ipaddress

import dns.resolver
import dns.exception
import validators
from dns import resolver
from ldap3.utils.conv import escape_filter_chars
from ldap3.utils.dn import parse_dn
from ldap3.core.exceptions import LDAPInvalidDnError
from impacket.examples.utils import parse_target

from dirdump.errors import InvalidArgument

LDAP_URL_PREFIX = "LDAP://"
NETBIOS_PATTERN = re.compile(r'^[-\w]{1,15}$')

KNOWN_HOSTNAME = {}

def sanitize_component(component):
	return re.sub(r'[<>:"/\\|?*]', '', component) if component else None

def dn2domain(value):
	return '.'.join(re.findall(r'DC=([\w-]+)', value, re.IGNORECASE)).lower()

def domain2dn(domain):
	"""corp.example.com -> DC=corp,DC=example,DC=com"""
	return ",".join(f"DC={part}" for part in domain.strip(".").split(".") if part)

def domain_to_path(domain):
	return f"{LDAP_URL_PREFIX}{domain}"

def is_dn(dn):
	dn_pattern = re.compile(r'^((CN=([^,]*)),)?((((?:CN|OU)=[^,]+,?)+),)?((DC=[^,]+,?)+)$', re.IGNORECASE)
	return bool(dn_pattern.match(dn))

def is_valid_fqdn(hostname: str) -> bool:
	if validators.domain(hostname):
		return True
	else:
		return False

def is_ipaddress(address):
	try:
		ipaddress.ip_address(address)
		return True
	except ValueError:
		return False

def parse_root_path(root_path):
	"""
	Split a search root into (host, base DN).

	Accepted forms:
		DC=corp,DC=example,DC=com                    -> (None, DN)
		corp.example.com                             -> ("corp.example.com", DN of domain)
		LDAP://corp.example.com                      -> ("corp.example.com", DN of domain)
		LDAP://dc01.corp.example.com/OU=Staff,DC=... -> ("dc01.corp.example.com", "OU=Staff,DC=...")
		LDAP://OU=Staff,DC=corp,DC=example,DC=com    -> (None, DN)
	"""
	if not root_path or not root_path.strip():
		raise InvalidArgument("Root path must be a non-empty string")

	path = root_path.strip()
	if path[:len(LDAP_URL_PREFIX)].upper() == LDAP_URL_PREFIX:
		path = path[len(LDAP_URL_PREFIX):]
		if "/" in path:
			host, dn = path.split("/", 1)
			host = host or None
		elif "=" in path:
			host, dn = None, path
		else:
			host, dn = path, None
	elif "=" in path:
		host, dn = None, path
	else:
		host, dn = path, None

	if dn is None:
		if is_ipaddress(host):
			# base DN comes from the server's defaultNamingContext
			return host, None
		if not is_valid_fqdn(host):
			raise InvalidArgument(f"Invalid domain name in root path: {root_path}")
		dn = domain2dn(host)
	else:
		try:
			parse_dn(dn)
		except LDAPInvalidDnError:
			raise InvalidArgument(f"Invalid distinguished name in root path: {root_path}")

	return host, dn

def parent_dn(dn):
	"""CN=NTDS Settings,CN=DC01,CN=Servers,... -> CN=DC01,CN=Servers,..."""
	components = parse_dn(dn, escape=True)
	return ",".join(f"{attr}={value}" for attr, value, _ in components[1:])

def rdn_value(dn, index=0):
	components = parse_dn(dn)
	if index >= len(components):
		return None
	return components[index][1]

def escape_filter_value(value):
	"""Escape a value for an equality filter, keeping a lone wildcard intact."""
	if value == "*":
		return value
	return escape_filter_chars(value)

def parse_alias(value):
	"""
	Split a DOMAIN\\alias identity.

	Raises:
		InvalidArgument: unless the value holds exactly one backslash with text on both sides
	"""
	parts = value.split("\\") if value else []
	if len(parts) != 2 or not parts[0] or not parts[1]:
		raise InvalidArgument(f"User name is not in domain\\alias format: {value}")
	return parts[0], parts[1]

def validate_netbios_name(netbios_name):
	if not netbios_name:
		raise InvalidArgument("NetBIOS domain name must not be empty")
	if not NETBIOS_PATTERN.match(netbios_name):
		raise InvalidArgument("Invalid NetBIOS domain name format. Domain name should be a maximum of 15 alphanumeric characters (including dashes).")
	return netbios_name

def parse_identity(args):
	domain, username, password, address = parse_target(args.target)

	if password == '' and username != '' and args.hashes is None and args.no_pass is False:
		from getpass import getpass
		password = getpass("Password:")

	if args.hashes is not None:
		if ":" not in args.hashes:
			args.hashes = ":" + args.hashes
		hashes = ("aad3b435b51404eeaad3b435b51404ee:".upper() + args.hashes.split(":")[1]).upper()
		lmhash, nthash = hashes.split(':')
	else:
		lmhash = ''
		nthash = ''

	return {'domain': domain, 'username': username, 'password': password, 'lmhash': lmhash, 'nthash': nthash, 'ldap_address': address}

def host2ip(hostname, nameserver=None, dns_timeout=10, dns_tcp=True, use_system_ns=True):
	if is_ipaddress(hostname):
		return hostname

	hostname = str(hostname).lower()
	if hostname in KNOWN_HOSTNAME:
		logging.debug(f"Using cached IP for {hostname}: {KNOWN_HOSTNAME[hostname]}")
		return KNOWN_HOSTNAME[hostname]

	if nameserver:
		logging.debug(f"Querying {hostname} from DNS server {nameserver}")
		dnsresolver = resolver.Resolver(configure=False)
		dnsresolver.nameservers = [nameserver]
	elif use_system_ns:
		logging.debug(f"Using host's resolver to resolve {hostname}")
		dnsresolver = resolver.Resolver()
	else:
		return hostname

	dnsresolver.lifetime = float(dns_timeout)
	try:
		q = dnsresolver.resolve(hostname, 'A', tcp=dns_tcp)
		addr = [r.address for r in q]
		if not addr:
			logging.error(f"No address records found for {hostname}")
			return None
		if len(addr) > 1:
			logging.debug(f"Multiple IPs found. Selecting first IP for {hostname}: {addr[0]}")
		KNOWN_HOSTNAME[hostname] = addr[0]
		logging.debug(f"Resolved {hostname} to {addr[0]}")
		return addr[0]
	except resolver.NXDOMAIN as e:
		logging.debug("Resolved Failed: %s" % e)
		return None
	except dns.exception.Timeout as e:
		logging.debug(str(e))
		return None
	except dns.resolver.NoNameservers as e:
		logging.debug(str(e))
		return None
	except dns.resolver.NoAnswer as e:
		logging.debug(str(e))
		return None
