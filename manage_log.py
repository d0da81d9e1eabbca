import argparse
import logging
import sys

from dotenv import load_dotenv

from exceptions import ReadingLogError
from query_engine import use_system_collation
from reading_log import ReadingLog
from settings import get_settings

# Load environment variables
load_dotenv()

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def export_log(log: ReadingLog, path: str) -> None:
    if log.export_workbook(path):
        logger.info(f"Exported reading log to {path}")
    else:
        logger.info("There is no data to export.")


def import_log(log: ReadingLog, path: str) -> None:
    result = log.import_workbook(path)
    logger.info(result.message)
    if result.skipped_books or result.skipped_sentences:
        logger.info(f"Skipped {result.skipped_books} book row(s) and "
                    f"{result.skipped_sentences} sentence row(s)")


def show_stats(log: ReadingLog) -> None:
    books = log.books()
    logger.info(f"{len(books)} books, {len(log.store.sentences)} sentences")
    for book in books:
        logger.info(f"  {book.title} - {book.author}: {len(log.store.sentences_for(book.id))} sentence(s)")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Import, export and inspect the reading log.")
    commands = parser.add_subparsers(dest="command", required=True)

    export_parser = commands.add_parser("export", help="Export books and sentences to .xlsx")
    export_parser.add_argument("path", nargs="?", default=get_settings().EXPORT_FILENAME)

    import_parser = commands.add_parser("import", help="Import books and sentences from .xlsx")
    import_parser.add_argument("path")

    commands.add_parser("stats", help="Show counts per book")

    args = parser.parse_args(argv)
    use_system_collation()

    log = ReadingLog()
    try:
        log.load()
        if args.command == "export":
            export_log(log, args.path)
        elif args.command == "import":
            import_log(log, args.path)
        else:
            show_stats(log)
    except ReadingLogError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
