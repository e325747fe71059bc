"""
Read (or create) the INI file configuring the record store and the books.
"""
import os
import datetime
import configparser


CONFIG_DIR = os.path.join(os.path.expanduser("~"), ".config", "homeledger")
CONFIG_PATH = os.path.join(CONFIG_DIR, "homeledger.cfg")


class LedgerConfig(configparser.ConfigParser):
    def make_default(self):
        self["db"] = {
            "dialect": "postgresql",
            "driver": "psycopg2",
            "username": "",
            "password": "T0PS3CR3T",
            "host": "localhost",
            "port": "5432",
            "database": "homeledger",
        }
        self["test"] = {"dialect": "sqlite"}
        self["books"] = {"reporting_currency": "GBP", "start_date": ""}

    @property
    def db_uri(self):
        return self._make_db_uri(**self["db"])

    @property
    def test_db_uri(self):
        return self._make_db_uri(**self["test"])

    @property
    def reporting_currency(self):
        return self.get("books", "reporting_currency", fallback="GBP")

    @property
    def start_date(self):
        """Configured first day of the books, or None to start at the first event."""
        value = self.get("books", "start_date", fallback="")
        if not value:
            return None
        return datetime.datetime.strptime(value, "%Y-%m-%d").date()

    def _make_db_uri(self, **kwargs):
        schema = "{dialect}"
        if kwargs.get("driver", None):
            schema += "+{driver}"

        credentials = ""
        if kwargs.get("username", None):
            credentials = "{username}"
            if kwargs.get("password", None):
                credentials += ":{password}"

        authority = ""
        if kwargs.get("host", None):
            authority = "@{host}"
            if kwargs.get("port", None):
                authority += ":{port}"

        db = ""
        if kwargs.get("database", None):
            db = "/{database}"

        template = "{schema}://{credentials}{authority}{db}".format(
            schema=schema, credentials=credentials, authority=authority, db=db
        )
        return template.format(**kwargs)


CONFIG = LedgerConfig()


# If no config exists, generate & write defaults
if os.path.exists(CONFIG_PATH):
    CONFIG.read(CONFIG_PATH)
else:
    CONFIG.make_default()
    os.makedirs(CONFIG_DIR, exist_ok=True)
    with open(CONFIG_PATH, "w") as configfile:
        CONFIG.write(configfile)
