"""
Django management command to load the corpus into the semantic index, or query it.

    manage.py semantic_search load
    manage.py semantic_search "how do I register?"
"""

import logging
import time

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from django_ai_search.conf import get_search_settings
from django_ai_search.contrib.index.base import SemanticIndex
from django_ai_search.exceptions import SemanticSearchError

logger = logging.getLogger("django_ai_search")

LOAD_COMMAND = "load"


class Command(BaseCommand):
    help = "Load the configured corpus into the semantic index, or run a query against it"

    def add_arguments(self, parser):
        parser.add_argument(
            "query",
            help=f"'{LOAD_COMMAND}' to ingest the corpus, anything else is run as a query",
        )
        parser.add_argument(
            "--corpus",
            help="Path to the corpus file (defaults to AI_SEARCH['CORPUS_PATH'])",
        )
        parser.add_argument(
            "--verbose",
            action="store_true",
            help=(
                "Set the django_ai_search loggers to DEBUG; the lines only appear "
                "if the project's LOGGING configuration attaches a handler"
            ),
        )

    def handle(self, *args, **options):
        if options["verbose"]:
            logger.setLevel(logging.DEBUG)

        search_settings = get_search_settings()

        try:
            index = SemanticIndex.from_settings(search_settings)
            if options["query"] == LOAD_COMMAND:
                self._load(index, options.get("corpus") or search_settings.corpus_path)
            else:
                self._query(index, options["query"])
        except SemanticSearchError as e:
            if options["verbose"]:
                logger.exception(f"semantic_search failed: {e}")
            raise CommandError(str(e)) from e

    def _load(self, index: SemanticIndex, corpus_path: str | None):
        if not corpus_path:
            raise CommandError(
                "No corpus file given: pass --corpus or set AI_SEARCH['CORPUS_PATH']"
            )

        start_time = time.time()
        self.stdout.write(f"Started at: {timezone.now()}")
        self.stdout.write(
            f"Loading {corpus_path} into collection '{index.collection.name}'..."
        )

        try:
            points = index.ingest_file(corpus_path)
        except OSError as e:
            raise CommandError(f"Failed to read {corpus_path}: {e}") from e

        elapsed = time.time() - start_time
        self.stdout.write(
            self.style.SUCCESS(
                f"Data loaded successfully: {len(points)} points in {elapsed:.2f}s"
            )
        )

    def _query(self, index: SemanticIndex, query: str):
        most_similar_id = index.search_top1(query)
        self.stdout.write(self.style.SUCCESS(f"Most similar text ID: {most_similar_id}"))
