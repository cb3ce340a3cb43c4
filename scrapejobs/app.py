import argparse
import csv
import sys
import uuid
from dataclasses import replace
from datetime import datetime, timedelta
from pathlib import Path

from . import __version__
from .config import Settings, load_settings
from .csvwriter import ProjectingWriter
from .database import init_database
from .errors import InvalidResultError, ScrapeJobsError
from .logger import get_logger
from .models import Job, JobData, JobStatus
from .records import TabularRecord
from .repository import SqliteJobRepository
from .service import JobService


def build_service(settings: Settings) -> JobService:
    logger = get_logger()
    repo = SqliteJobRepository(settings.db_path, lock_timeout=settings.lock_timeout)
    return JobService(repo, settings.data_folder, policy=settings.backoff_policy(), logger=logger)


def cmd_init_db(args: argparse.Namespace) -> None:
    init_database(args.settings.db_path, args.settings.lock_timeout)
    print(f"Database ready: {args.settings.db_path}")


def cmd_submit(args: argparse.Namespace) -> None:
    keywords = [k.strip() for k in args.keywords.split(",") if k.strip()]
    job = Job(
        id=args.id or str(uuid.uuid4()),
        name=args.name,
        date=datetime.now(),
        status=JobStatus.PENDING.value,
        data=JobData(
            keywords=keywords,
            lang=args.lang,
            zoom=args.zoom,
            lat=args.lat or "",
            lon=args.lon or "",
            fast_mode=args.fast_mode,
            radius=args.radius,
            depth=args.depth,
            email=args.email,
            max_time=timedelta(seconds=args.max_time),
            proxies=[p.strip() for p in (args.proxies or "").split(",") if p.strip()],
            fields=args.fields or "",
        ),
    )
    build_service(args.settings).create(job)
    print(f"Job: {job.id}")
    print(f"Status: {job.status}")


def cmd_list(args: argparse.Namespace) -> None:
    jobs = build_service(args.settings).all()
    if not jobs:
        print("No jobs in store.")
        return
    print(f"Found {len(jobs)} jobs:\n")
    for job in jobs:
        print(f"ID: {job.id}")
        print(f"  Name: {job.name}")
        print(f"  Date: {job.date.isoformat() if job.date else ''}")
        print(f"  Status: {job.status}")
        print(f"  Keywords: {', '.join(job.data.keywords)}")
        print()


def cmd_show(args: argparse.Namespace) -> None:
    job = build_service(args.settings).get(args.id)
    print(f"ID: {job.id}")
    print(f"  Name: {job.name}")
    print(f"  Status: {job.status}")
    print(f"  Lang: {job.data.lang}  Depth: {job.data.depth}  Max time: {job.data.max_time}")
    print(f"  Fields: {job.data.fields or '(all)'}")


def cmd_delete(args: argparse.Namespace) -> None:
    build_service(args.settings).delete(args.id)
    print(f"Deleted: {args.id}")


def cmd_csv(args: argparse.Namespace) -> None:
    print(build_service(args.settings).get_csv(args.id))


def _tabular_records(reader, headers):
    for row in reader:
        try:
            yield TabularRecord(headers, row)
        except ValueError as e:
            raise InvalidResultError(f"line {reader.line_num}: {e}") from e


def cmd_project(args: argparse.Namespace) -> None:
    input_path = Path(args.input)
    if not input_path.exists():
        raise SystemExit(f"Input file not found: {input_path}")

    with input_path.open("r", newline="", encoding="utf-8") as f:
        reader = csv.reader(f)
        headers = next(reader, None)
        if headers is None:
            return
        records = _tabular_records(reader, headers)
        if args.output:
            with open(args.output, "w", newline="", encoding="utf-8") as out:
                ProjectingWriter(out, args.fields).run(records)
        else:
            ProjectingWriter(sys.stdout, args.fields).run(records)


def main(argv=None):
    parser = argparse.ArgumentParser(prog="scrapejobs", description="Scrape job store and CSV export")
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument("--db", help="Path to SQLite database (or set SCRAPEJOBS_DB_PATH)")
    parser.add_argument("--data", help="Folder holding CSV artifacts (or set SCRAPEJOBS_DATA_FOLDER)")

    subparsers = parser.add_subparsers(dest="command")
    ini = subparsers.add_parser("init-db", help="Create the database and tables")
    ini.set_defaults(func=cmd_init_db)

    sub = subparsers.add_parser("submit", help="Submit a new pending scrape job")
    sub.add_argument("--name", required=True, help="Job name")
    sub.add_argument("--keywords", required=True, help="Comma-separated search keywords")
    sub.add_argument("--id", help="Job id (default: random UUID)")
    sub.add_argument("--lang", default="en", help="Two letter language code (default: en)")
    sub.add_argument("--zoom", type=int, default=15, help="Map zoom level")
    sub.add_argument("--lat", help="Latitude (required with --fast-mode)")
    sub.add_argument("--lon", help="Longitude (required with --fast-mode)")
    sub.add_argument("--fast-mode", action="store_true", help="Scrape around lat/lon only")
    sub.add_argument("--radius", type=int, default=10000, help="Radius in meters for fast mode")
    sub.add_argument("--depth", type=int, default=10, help="Scroll depth")
    sub.add_argument("--email", action="store_true", help="Extract emails from websites")
    sub.add_argument("--max-time", type=float, default=600, help="Max run time in seconds")
    sub.add_argument("--proxies", help="Comma-separated proxy URLs")
    sub.add_argument("--fields", help="Comma-separated CSV columns to keep (default: all)")
    sub.set_defaults(func=cmd_submit)

    lst = subparsers.add_parser("list", help="List all jobs")
    lst.set_defaults(func=cmd_list)

    shw = subparsers.add_parser("show", help="Show one job")
    shw.add_argument("id", help="Job id")
    shw.set_defaults(func=cmd_show)

    dlt = subparsers.add_parser("delete", help="Delete a job and its CSV file")
    dlt.add_argument("id", help="Job id")
    dlt.set_defaults(func=cmd_delete)

    csvp = subparsers.add_parser("csv", help="Print the path of a job's CSV file")
    csvp.add_argument("id", help="Job id")
    csvp.set_defaults(func=cmd_csv)

    prj = subparsers.add_parser("project", help="Keep only selected columns of a CSV file")
    prj.add_argument("--input", required=True, help="CSV file with a header row")
    prj.add_argument("--fields", default="", help="Comma-separated columns to keep (case-insensitive)")
    prj.add_argument("--output", help="Output CSV path (default: stdout)")
    prj.set_defaults(func=cmd_project)

    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return

    settings = load_settings()
    if args.data:
        settings = replace(settings, data_folder=Path(args.data))
    if args.db:
        settings = replace(settings, db_path=Path(args.db))
    args.settings = settings
    get_logger(
        level=settings.log_level,
        log_dir=settings.log_dir,
        enable_file=settings.log_dir is not None,
    )

    if hasattr(args, "func"):
        try:
            args.func(args)
        except ScrapeJobsError as e:
            raise SystemExit(f"Error: {e}")
        return

    parser.print_help()


if __name__ == "__main__":
    main()
