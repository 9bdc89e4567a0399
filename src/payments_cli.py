import logging
import sys
from decimal import Context, Decimal
from typing import Iterable, List, Optional, TextIO

from payment_errors import SourceExhaustedOrFailed
from payment_models import MONEY_PRECISION, ClientSnapshot
from payments_engine import PaymentsEngine

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s: %(message)s",
    stream=sys.stderr,
)

logger = logging.getLogger(__name__)

FOUR_PLACES = Decimal("0.0001")

# Room for any balance MONEY_CONTEXT allows plus four decimal places
OUTPUT_CONTEXT = Context(prec=MONEY_PRECISION + 4)


def format_decimal(value: Decimal) -> str:
    """Format decimal with up to 4 decimal places, removing trailing zeros."""
    quantized = value.quantize(FOUR_PLACES, context=OUTPUT_CONTEXT)
    if quantized.is_zero():
        return "0"
    return f"{quantized.normalize(OUTPUT_CONTEXT):f}"


def write_accounts(snapshots: Iterable[ClientSnapshot], out: Optional[TextIO] = None) -> None:
    """Write client snapshots as CSV, ordered by client id. Defaults to stdout."""
    out = out if out is not None else sys.stdout
    out.write("client,available,held,total,locked\n")
    for snapshot in sorted(snapshots, key=lambda s: s.client_id):
        out.write(
            f"{snapshot.client_id},"
            f"{format_decimal(snapshot.available)},"
            f"{format_decimal(snapshot.held)},"
            f"{format_decimal(snapshot.total)},"
            f"{str(snapshot.locked).lower()}\n"
        )


def main(argv: Optional[List[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 1:
        print("Usage: python payments_cli.py <input.csv>", file=sys.stderr)
        return 1

    engine = PaymentsEngine()
    try:
        engine.process_file(args[0])
    except SourceExhaustedOrFailed as e:
        logger.error(str(e))
        return 1

    write_accounts(engine.snapshot_all())
    print(engine.stats.summary(), file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
