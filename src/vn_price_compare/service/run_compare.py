import logging
from pathlib import Path

from vn_price_compare.config import Settings
from vn_price_compare.domain.models import ComparisonRecord
from vn_price_compare.service.compare import ComparisonSession, build_service
from vn_price_compare.service.report import (
    filter_vn30,
    load_company_names,
    search_records,
    sort_by_company,
    write_csv,
)

logger = logging.getLogger(__name__)


def run_compare(settings: Settings) -> list[ComparisonRecord]:
    logger.info(
        "Iniciando comparação | bolsa=%s | início=%s | fim=%s | arquivo_saída=%s",
        settings.exchange.value,
        settings.start.isoformat(),
        settings.end.isoformat(),
        settings.output,
    )

    names: dict[str, str] = {}
    if settings.companies:
        names = load_company_names(Path(settings.companies))
        logger.info("Nomes de empresas carregados | total=%s", len(names))

    artifacts_dir = Path(settings.artifacts_dir) if settings.artifacts_dir else None
    service = build_service(
        timeout=settings.timeout,
        deadline=settings.deadline,
        artifacts_dir=artifacts_dir,
    )
    session = ComparisonSession(service)

    # "company" depende do mapa de nomes, então é aplicado depois do join
    core_sort = None if settings.sort_by == "company" else settings.sort_by
    outcome = session.run(
        settings.exchange,
        settings.start,
        settings.end,
        sort_by=core_sort,
        descending=settings.descending,
    )
    records = outcome.records if outcome is not None else []

    if settings.vn30_only:
        records = filter_vn30(records)
    if settings.search:
        records = search_records(records, settings.search, names)
    if settings.sort_by == "company":
        records = sort_by_company(records, names, descending=settings.descending)

    positives = sum(1 for record in records if record.is_positive)
    logger.info(
        "Registros finais | total=%s | em_alta=%s | em_queda=%s",
        len(records),
        positives,
        len(records) - positives,
    )

    output_path = Path(settings.output)
    write_csv(records, output_path, names)
    logger.info("CSV gerado | caminho=%s", output_path)
    return records
