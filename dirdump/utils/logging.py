#!/usr/bin/env python3
import os
import sys
import logging
from datetime import date

DEBUG = 'DEBUG'
HOME_ENV = 'DIRDUMP_HOME'

class CustomFormatter(logging.Formatter):
    grey = '\033[2;37m'
    green = '\033[92m'
    yellow = '\033[93m'
    red = '\033[91m'
    bold_red = '\x1b[31;1m'
    reset = '\033[0m'

    def __init__(self, fmt, colored=True):
        super().__init__()
        self.fmt = fmt
        if colored:
            self.FORMATS = {
                logging.DEBUG: self.grey + self.fmt + self.reset,
                logging.INFO: self.green + self.fmt + self.reset,
                logging.WARNING: self.yellow + self.fmt + self.reset,
                logging.ERROR: self.red + self.fmt + self.reset,
                logging.CRITICAL: self.bold_red + self.fmt + self.reset
            }
        else:
            self.FORMATS = {}

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno, self.fmt)
        formatter = logging.Formatter(log_fmt, "%Y-%m-%d %H:%M:%S")
        return formatter.format(record)

def default_root_folder():
    override = os.environ.get(HOME_ENV)
    if override:
        return os.path.expanduser(override)
    if os.name == 'nt':
        return os.path.join(os.environ.get('APPDATA', os.path.expanduser('~')), "dirdump")
    return os.path.join(os.path.expanduser('~'), ".dirdump")

class LOG:
    """
    Per-target log folder plus the root logger wiring.

    Everything goes to <root>/logs/<folder>/<date>.log; the console handler
    writes to stderr so that records on stdout stay machine readable.
    """
    def __init__(self, folder_name, root_folder=None):
        self.root_folder = root_folder if root_folder else default_root_folder()
        self.folder_name = folder_name.lower()
        self.logs_folder = os.path.join(self.root_folder, "logs", self.folder_name)

        if not os.path.exists(self.logs_folder):
            self.create_folder()

        self.file_name = "%s.log" % date.today()

    def create_folder(self, folder=None):
        folder = folder if folder else self.logs_folder
        return os.makedirs(folder, exist_ok=True)

    @property
    def file_path(self):
        return os.path.join(self.logs_folder, self.file_name)

    def setup_logger(self, level=logging.INFO, stream=None):
        if level == DEBUG:
            level = logging.DEBUG

        logger = logging.getLogger()
        logger.setLevel(logging.DEBUG)

        fileh = logging.FileHandler(self.file_path, 'a')
        formatter = logging.Formatter('[%(asctime)s] %(name)s %(levelname)s %(message)s')
        fileh.setFormatter(formatter)
        logger.addHandler(fileh)

        stream = stream if stream is not None else sys.stderr
        fmt = '[%(asctime)s] %(message)s'
        console_handler = logging.StreamHandler(stream)
        console_handler.setLevel(level)
        console_handler.setFormatter(CustomFormatter(fmt, colored=hasattr(stream, "isatty") and stream.isatty()))
        logger.addHandler(console_handler)

        # ldap3 and impacket are chatty at DEBUG
        for name in ("ldap3", "impacket"):
            logging.getLogger(name).setLevel(logging.WARNING)

        logging.debug("Logging directory is set to %s" % (self.logs_folder))
        return logger
