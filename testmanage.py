#!/usr/bin/env python
"""Run management commands against the test project.

    ./testmanage.py semantic_search load --corpus tests/testapp/corpus.txt
    ./testmanage.py semantic_search "alpha text"
"""

import logging
import os
import sys

from django.core.management import execute_from_command_line

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "testapp.settings")
sys.path.append("src")
sys.path.append("tests")


def main():
    logging.basicConfig(
        level=os.environ.get("AI_SEARCH_LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    execute_from_command_line(sys.argv)


if __name__ == "__main__":
    main()
