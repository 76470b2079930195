#!/usr/bin/python3

from deploy_pipeline.cli import run
from deploy_pipeline.constants import CONSTRUCTOR_PARAMS_DIR

CONSTRUCTOR_PARAMS_FILEPATH = CONSTRUCTOR_PARAMS_DIR / "monad_testnet" / "course_badge.yml"


def main():
    """
    Deploys CourseBadge to Monad Testnet.

    ape run monad_testnet deploy_course_badge --network monad:testnet:node
    """
    run(filepath=CONSTRUCTOR_PARAMS_FILEPATH)
