import argparse
import sys

from vn_price_compare.config import Settings
from vn_price_compare.logging_conf import setup_logging
from vn_price_compare.service.run_compare import run_compare
from vn_price_compare.utils.dates import parse_date


def _date_arg(value: str):
    try:
        return parse_date(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vn-price-compare",
        description="Compara a variação de preço das ações da HOSE ou da HNX entre duas datas.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--exchange",
        required=True,
        type=str.upper,
        choices=["HOSE", "HNX"],
        help="Bolsa a consultar.",
    )
    parser.add_argument(
        "--start",
        required=True,
        type=_date_arg,
        help="Data inicial (YYYY-MM-DD ou DD/MM/YYYY).",
    )
    parser.add_argument(
        "--end",
        required=True,
        type=_date_arg,
        help="Data final (YYYY-MM-DD ou DD/MM/YYYY).",
    )
    parser.add_argument(
        "--output",
        default="comparison.csv",
        help="Caminho e nome do arquivo CSV onde os dados serão salvos.",
    )
    parser.add_argument(
        "--sort",
        dest="sort_by",
        default=None,
        choices=["symbol", "change", "start_price", "end_price", "company"],
        help="Ordenação do resultado (padrão: ordem da bolsa).",
    )
    parser.add_argument(
        "--desc",
        action="store_true",
        default=False,
        help="Ordena de forma decrescente.",
    )
    parser.add_argument(
        "--vn30",
        action="store_true",
        default=False,
        help="Mantém só as ações do VN30.",
    )
    parser.add_argument(
        "--search",
        default=None,
        help="Filtra por código ou nome da empresa (ex: 'VCB', 'Vietcombank').",
    )
    parser.add_argument(
        "--companies",
        default=None,
        help="Arquivo JSON com o mapa código -> nome da empresa.",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=20,
        help="Timeout de cada requisição HTTP, em segundos.",
    )
    parser.add_argument(
        "--deadline",
        type=float,
        default=None,
        help="Tempo máximo da comparação inteira, em segundos.",
    )
    parser.add_argument(
        "--artifacts-dir",
        default="artifacts",
        help="Pasta para artefatos de depuração (respostas com erro, HTML sem linhas).",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Define o nível de detalhamento dos logs de execução.",
    )

    return parser


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    if args.end < args.start:
        parser.error("--end deve ser igual ou posterior a --start.")

    settings = Settings(
        exchange=args.exchange,
        start=args.start,
        end=args.end,
        output=args.output,
        log_level=args.log_level,
        timeout=args.timeout,
        deadline=args.deadline,
        sort_by=args.sort_by,
        descending=args.desc,
        vn30_only=args.vn30,
        search=args.search,
        companies=args.companies,
        artifacts_dir=args.artifacts_dir or None,
    )

    setup_logging(settings.log_level)

    try:
        run_compare(settings)
    except Exception as exc:
        print(f"❌ Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
