import argparse
import sys
import logging

from dirdump.utils.helpers import parse_identity
from dirdump.utils.constants import (
	DEFAULT_PAGE_SIZE,
	DEFAULT_PAGE_TIMEOUT,
	OUTPUT_FORMATS,
)
from dirdump._version import BANNER, __version__

class DirDumpParser(argparse.ArgumentParser):
	def error(self, message):
		self.print_usage(sys.stderr)
		logging.error(message)
		sys.exit(2)

class Helper:
	def positive_int(value):
		"""argparse type for page sizes and timeouts."""
		try:
			number = int(value)
		except (TypeError, ValueError):
			raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}")
		if number <= 0:
			raise argparse.ArgumentTypeError(f"must be a positive integer: {value!r}")
		return number

	def max_count(value):
		"""argparse type for --max-count; 0 means no cap."""
		try:
			number = int(value)
		except (TypeError, ValueError):
			raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}")
		if number < 0:
			raise argparse.ArgumentTypeError(f"must not be negative: {value!r}")
		return number

def build_parser():
	parser = DirDumpParser(prog="dirdump", description=f"Dump users, groups, domains and global catalogs of an Active Directory forest, version {__version__}")
	parser.add_argument('target', action='store', metavar='target', help='[[domain/]username[:password]@]<targetName or address>')
	parser.add_argument('-p','--port', dest='port', action='store', help='LDAP server port. (Default: 389|636)', type=int)
	parser.add_argument('-d','--debug', dest='debug', action='store_true', help='Enable debug output')
	parser.add_argument('--stack-trace', dest='stack_trace', action='store_true', help='raise exceptions and exit if unhandled errors')
	parser.add_argument('-ns','--nameserver', dest='nameserver', action='store', help='Specify custom nameserver. If not specified, the system resolver is used')
	parser.add_argument('-v','--version', dest='version', action='version', version=BANNER)

	search = parser.add_argument_group('search')
	search.add_argument('--page-size', dest='page_size', action='store', type=Helper.positive_int, default=DEFAULT_PAGE_SIZE, help=f'Entries per page request (Default: {DEFAULT_PAGE_SIZE})')
	search.add_argument('--page-timeout', dest='page_timeout', action='store', type=Helper.positive_int, default=DEFAULT_PAGE_TIMEOUT, help=f'Seconds to wait for one page (Default: {DEFAULT_PAGE_TIMEOUT})')
	search.add_argument('--skip-malformed', dest='skip_malformed', action='store_true', default=False, help='Skip entries without a distinguishedName instead of aborting')
	search.add_argument('-o','--output', dest='output', action='store', choices=OUTPUT_FORMATS, default='table', help='Output format of the domains and catalogs commands (Default: table)')

	protocol = parser.add_argument_group('protocol')
	group = protocol.add_mutually_exclusive_group()
	group.add_argument('--use-ldap', dest='use_ldap', action='store_true', help='[Optional] Use LDAP instead of LDAPS')
	group.add_argument('--use-ldaps', dest='use_ldaps', action='store_true', help='[Optional] Use LDAPS instead of LDAP')
	group.add_argument('--use-gc', dest='use_gc', action='store_true', help='[Optional] Use GlobalCatalog (GC) protocol')
	group.add_argument('--use-gc-ldaps', dest='use_gc_ldaps', action='store_true', help='[Optional] Use GlobalCatalog (GC) protocol for LDAPS')

	auth = parser.add_argument_group('authentication')
	auth.add_argument('-H','--hashes', action="store", metavar = "LMHASH:NTHASH", help='NTLM hashes, format is LMHASH:NTHASH')
	auth.add_argument("-k", "--kerberos", dest="use_kerberos", action="store_true", help='Use Kerberos authentication. Grabs credentials from .ccache file (KRB5CCNAME)')
	auth.add_argument("--use-simple-auth", dest="use_simple_auth", action="store_true", default=False, help='Authenticate with SIMPLE authentication')
	auth.add_argument('--no-pass', action="store_true", help="don't ask for password (useful for -k)")

	commands = parser.add_subparsers(dest='command', metavar='command')
	commands.required = True

	userdn = commands.add_parser('userdn', help='Print the distinguished name of a DOMAIN\\alias user (default: the bound user)')
	userdn.add_argument('alias', action='store', nargs='?', default=None, metavar='DOMAIN\\alias')

	topuserdn = commands.add_parser('topuserdn', help='Print the topmost manager above a user')
	topuserdn.add_argument('--root', dest='root', action='store', default=None, help='Root path to search (Default: the bound domain)')
	topuserdn.add_argument('--start', dest='start', action='store', default=None, help='Distinguished name to start from (Default: the bound user)')

	commands.add_parser('domains', help='List the domains of the forest')
	commands.add_parser('catalogs', help='List the global catalog servers of the forest')

	users = commands.add_parser('users', help='Dump users as JSON lines')
	users.add_argument('--max-count', dest='max_count', action='store', type=Helper.max_count, default=0, help='Stop after N users (Default: 0, no limit)')
	users.add_argument('--manager', dest='manager', action='store', default=None, metavar='DOMAIN\\alias', help='Only users managed by this user')
	users.add_argument('roots', action='store', nargs='*', metavar='ROOT', help='Root paths to search (Default: every domain of the forest)')

	groups = commands.add_parser('groups', help='Dump groups as JSON lines')
	groups.add_argument('--max-count', dest='max_count', action='store', type=Helper.max_count, default=0, help='Stop after N groups (Default: 0, no limit)')
	groups.add_argument('roots', action='store', nargs='*', metavar='ROOT', help='Root paths to search (Default: every domain of the forest)')

	return parser

def arg_parse(argv=None):
	parser = build_parser()

	if argv is None and len(sys.argv) == 1:
		parser.print_help()
		sys.exit(1)

	args = parser.parse_args(argv)

	parsed_identity = parse_identity(args)
	args.domain = parsed_identity['domain']
	args.username = parsed_identity['username']
	args.password = parsed_identity['password']
	args.lmhash = parsed_identity['lmhash']
	args.nthash = parsed_identity['nthash']
	args.ldap_address = parsed_identity['ldap_address']

	return args
