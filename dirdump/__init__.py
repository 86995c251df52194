#!/usr/bin/env python3
import sys
import logging

from dirdump.dirdump import DirDump
from dirdump.errors import DirDumpError
from dirdump.utils.helpers import sanitize_component, is_dn
from dirdump.utils.formatter import FORMATTER
from dirdump.utils.connections import CONNECTION
from dirdump.utils.logging import LOG
from dirdump.utils.parsers import arg_parse

def log_folder_name(args):
    flat_domain = args.domain.split('.')[0] if '.' in (args.domain or '') else args.domain
    components = [
        sanitize_component((flat_domain or '').lower()),
        sanitize_component((args.username or '').lower()),
        sanitize_component((args.ldap_address or '').lower()),
    ]
    return '-'.join(filter(None, components)) or "default-log"

def run_command(dirdump, args, formatter):
    """Execute one command; returns the process exit status."""
    if args.command == 'userdn':
        dn = dirdump.resolve_user_identifier(args.alias)
        if not dn:
            logging.error(f"User {args.alias or 'for the current session'} not found")
            return 1
        formatter.print_value(dn)
    elif args.command == 'topuserdn':
        formatter.print_value(dirdump.resolve_topmost_manager(args.root, args.start))
    elif args.command == 'domains':
        formatter.print_domains(dirdump.list_domains(), args.output)
    elif args.command == 'catalogs':
        formatter.print_catalogs(dirdump.list_catalogs(), args.output)
    elif args.command == 'users':
        manager = args.manager
        if manager and manager != '*' and not is_dn(manager):
            manager = dirdump.resolve_user_identifier(manager, required=True)
        count = formatter.print_json_lines(dirdump.list_users(args.roots or None, manager, args.max_count))
        logging.debug(f"Dumped {count} user(s)")
    elif args.command == 'groups':
        count = formatter.print_json_lines(dirdump.list_groups(args.roots or None, args.max_count))
        logging.debug(f"Dumped {count} group(s)")
    return 0

def main(argv=None):
    """
    Entry point for the dirdump command.

    Parses the command line, sets up the log folder, runs one command and
    exits with 0 on success or 1 when the directory query failed.
    """
    args = arg_parse(argv)

    log_handler = LOG(log_folder_name(args))
    if args.debug:
        log_handler.setup_logger("DEBUG")
    else:
        log_handler.setup_logger()

    status = 1
    try:
        conn = CONNECTION(args)
        dirdump = DirDump(conn, args)
        status = run_command(dirdump, args, FORMATTER(args))
    except KeyboardInterrupt:
        logging.warning("Interrupted")
        status = 130
    except DirDumpError as e:
        if args.stack_trace:
            raise
        logging.error(str(e))
        status = 1
    sys.exit(status)

if __name__ == '__main__':
    main()
