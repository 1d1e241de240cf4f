import sys
import logging
import argparse

from src import config
from src.errors import FetchError, ParseError, AmbiguousJoinError
from src.case_data_ingestion.enrich_incidence import run_ingestion
from src.incidence_classification.quantile_bins import run_classification
from src.visualization.incidence_map import save_incidence_maps
from src.vector_operations.spatial_tools import reproject

logger = logging.getLogger(__name__)

EXIT_CODES = [
    (FetchError, 2),
    (ParseError, 3),
    (FileNotFoundError, 4),
    (AmbiguousJoinError, 5),
]


def build_parser():
    ap = argparse.ArgumentParser(
        description="Swiss COVID-19 incidence per canton: fetch, enrich, classify and map"
    )
    ap.add_argument("-v", "--verbose", action="store_true", help="Log debug messages")
    sub = ap.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Fetch case data and write the enriched table")
    add_ingest_arguments(ingest)

    classify = sub.add_parser("classify", help="Classify canton incidence and draw the maps")
    add_classify_arguments(classify)

    run = sub.add_parser("run", help="ingest, then classify")
    add_ingest_arguments(run)
    add_classify_arguments(run, with_enriched=False)

    return ap


def add_ingest_arguments(parser):
    parser.add_argument("--url", default=config.CASE_DATA_URL, help="Case data endpoint")
    parser.add_argument("--population", default=config.POPULATION_FILE, help="BFS population table (xlsx or csv)")
    parser.add_argument("--output", default=config.ENRICHED_FILE, help="Enriched CSV to write")
    parser.add_argument("--as-of", default=None, help="Reporting date YYYY-MM-DD (default: latest in the feed)")


def add_classify_arguments(parser, with_enriched=True):
    if with_enriched:
        parser.add_argument("--enriched", default=config.ENRICHED_FILE, help="Enriched CSV written by ingest")
    parser.add_argument("--mapping", default=config.CODE_MAPPING_FILE, help="Canton code mapping CSV")
    parser.add_argument("--geometries", default=config.GEOMETRY_FILE, help="Canton polygon file")
    parser.add_argument("--id-column", default=config.GEOMETRY_ID_COLUMN, help="Numeric canton id field in the polygon file")
    parser.add_argument("--figures", default=config.FIGURE_DIR, help="Directory for the map images")


def classify(enriched_path, args):
    regions = run_classification(enriched_path, args.mapping, args.geometries, args.id_column)

    logger.info("Fragments per incidence class:")
    for label, count in regions['incidence_bin'].value_counts(sort=False, dropna=False).items():
        logger.info(f"  {label}: {count}")

    if regions.crs is not None:
        regions = reproject(regions, config.METRIC_CRS)
    save_incidence_maps(regions, args.figures)


def run_cli(args):
    try:
        if args.command in ("ingest", "run"):
            output_path = run_ingestion(args.url, args.population, args.output, args.as_of)
        if args.command == "classify":
            classify(args.enriched, args)
        elif args.command == "run":
            classify(output_path, args)
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return 130
    except Exception as e:
        for error_type, code in EXIT_CODES:
            if isinstance(e, error_type):
                logger.error(f"{type(e).__name__}: {e}")
                return code
        raise

    return 0


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )
    return run_cli(args)


if __name__ == "__main__":
    sys.exit(main())
