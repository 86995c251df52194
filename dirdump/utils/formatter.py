import json
import sys
from tabulate import tabulate as table

DOMAIN_HEADERS = ["Name", "Parent", "Mode"]
CATALOG_HEADERS = ["Name", "Site", "OS Version"]

class FORMATTER:
    """Writes records to stdout, one JSON object per line or as a table."""
    def __init__(self, args=None, stream=None):
        self.args = args
        self.stream = stream if stream is not None else sys.stdout
        self.table_format = "simple"

    def write(self, text):
        self.stream.write(text + "\n")

    def print_json_lines(self, records):
        count = 0
        for record in records:
            self.write(json.dumps(record.to_dict(), ensure_ascii=False))
            count += 1
        self.stream.flush()
        return count

    def print_table(self, entries: list, headers: list, align: str = None):
        filtered_entries = [entry for entry in entries if not all(e in ('', None) for e in entry)]
        table_res = table(
            filtered_entries,
            headers,
            numalign="left" if not align else align,
            tablefmt=self.table_format,
            missingval="",
        )
        self.write(table_res)

    def print_domains(self, domains, output="table"):
        if output == "json":
            return self.print_json_lines(domains)
        rows = [[d.name, d.parent_name, d.mode] for d in domains]
        self.print_table(rows, DOMAIN_HEADERS)
        return len(rows)

    def print_catalogs(self, catalogs, output="table"):
        if output == "json":
            return self.print_json_lines(catalogs)
        rows = [[c.name, c.site_name, c.os_version] for c in catalogs]
        self.print_table(rows, CATALOG_HEADERS)
        return len(rows)

    def print_value(self, value):
        if value:
            self.write(value)
