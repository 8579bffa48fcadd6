"""Well-known names, paths, and exit codes shared across JarCDS stages."""

from __future__ import annotations

import os
from pathlib import PurePath

MY_NAME = "jarcds"
MY_PRETTY_NAME = "jCuDoS"

SHARED_ROOT = PurePath("_shared")
SHARED_CLASS_LIST_PATH = SHARED_ROOT / "list" / "classes.list"
SHARED_ARGFILE_PATH = SHARED_ROOT / "list" / "classpath.arg"
SHARED_ARCHIVE_PATH = SHARED_ROOT / "jsa" / "classes.jsa"

DEFAULT_OUT_DIR = "_appcds"
LIB_DIR_NAME = "lib"
LOCK_FILE_NAME = ".lock"
START_CLASS_FILE_NAME = "start-class.txt"
APPCDS_ARGFILE_NAME = "appcds.arg"

MANIFEST_NAME = "META-INF/MANIFEST.MF"
START_CLASS_ATTRIBUTE = "Start-Class"
MAIN_CLASS_ATTRIBUTE = "Main-Class"
BASE_ATTRIBUTE_NAMES: tuple[str, ...] = (MAIN_CLASS_ATTRIBUTE, START_CLASS_ATTRIBUTE)
FAT_JAR_ATTRIBUTE_PREFIX = "Spring-Boot-"

EMBEDDED_PREFIXES: tuple[str, ...] = ("BOOT-INF/", "WEB-INF/")
EMBEDDED_CLASSES_PREFIXES: tuple[str, ...] = ("BOOT-INF/classes/", "WEB-INF/classes/")
NESTED_ARCHIVE_SUFFIX = ".jar"
SLIM_SUFFIX = ".slim"
CLASS_SUFFIX = ".class"

PATH_SEPARATOR = os.pathsep
NEW_LINE = "\n"

ALREADY_IN_PROGRESS_EXIT_CODE = 1
APPCDS_ERROR_EXIT_CODE = 2
INTERNAL_ERROR_EXIT_CODE = 3

__all__ = [
    "ALREADY_IN_PROGRESS_EXIT_CODE",
    "APPCDS_ARGFILE_NAME",
    "APPCDS_ERROR_EXIT_CODE",
    "BASE_ATTRIBUTE_NAMES",
    "CLASS_SUFFIX",
    "DEFAULT_OUT_DIR",
    "EMBEDDED_CLASSES_PREFIXES",
    "EMBEDDED_PREFIXES",
    "FAT_JAR_ATTRIBUTE_PREFIX",
    "INTERNAL_ERROR_EXIT_CODE",
    "LIB_DIR_NAME",
    "LOCK_FILE_NAME",
    "MAIN_CLASS_ATTRIBUTE",
    "MANIFEST_NAME",
    "MY_NAME",
    "MY_PRETTY_NAME",
    "NESTED_ARCHIVE_SUFFIX",
    "NEW_LINE",
    "PATH_SEPARATOR",
    "SHARED_ARCHIVE_PATH",
    "SHARED_ARGFILE_PATH",
    "SHARED_CLASS_LIST_PATH",
    "SHARED_ROOT",
    "SLIM_SUFFIX",
    "START_CLASS_ATTRIBUTE",
    "START_CLASS_FILE_NAME",
]
