"""Locations of generated output files."""

JS_DATA_FILE = "static/analysis/data-set.js"
WEBSITE_DIR = "website/"


def js_data_path() -> str:
    """Path of the JavaScript data file the analysis website loads."""
    return WEBSITE_DIR + JS_DATA_FILE