"""Treepatch - VCDIFF patch sets between two versions of a directory tree."""

__version__ = "1.0.0"

# Directory and file constants
CONFIG_FILE = "config.yaml"
MANIFEST_FILE = "patchedFiles.yaml"
STAGING_DIR = "tmp"
DELTA_SUFFIX = ".upd"
ARCHIVE_SUFFIX = ".tar.gz"
PACKAGE_PREFIX = "p"
PACKAGE_FILES_DIR = "files"
DEFAULT_COMPRESSION_LEVEL = 6
