import logging


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    # “Corta” barulho de libs
    noisy = [
        "urllib3",
        "requests",
        "charset_normalizer",
    ]
    for name in noisy:
        logging.getLogger(name).setLevel(logging.WARNING)
