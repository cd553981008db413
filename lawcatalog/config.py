"""
Runtime configuration for the lawcatalog pipeline.

Values come from environment variables (optionally loaded from a .env file).
Command-line flags in lawcatalog.cli override them.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Catalog format version, written to the log at the start of each run
CATALOG_VERSION = "0.7.2"

# Upper bound on simultaneously in-flight file reads/parses
MAX_CONCURRENCY = 16

# Document source understood by parsers.get_parser()
DEFAULT_SOURCE = "egov"

# Log directory configuration
LOG_DIR = Path(os.getenv("LAWCATALOG_LOG_DIR", "logs"))
LOG_FILE = LOG_DIR / os.getenv("LAWCATALOG_LOG_FILE", "lawcatalog.log")

# e-Gov distributes all_law_list.csv in Shift_JIS
INDEX_ENCODING = os.getenv("LAWCATALOG_INDEX_ENCODING", "cp932")
