#!/usr/bin/python3

from deploy_pipeline.cli import run
from deploy_pipeline.constants import CONSTRUCTOR_PARAMS_DIR

CONSTRUCTOR_PARAMS_FILEPATH = CONSTRUCTOR_PARAMS_DIR / "monad_testnet" / "sistem_akademik.yml"


def main():
    """
    Deploys SistemAkademik to Monad Testnet.

    ape run monad_testnet deploy_sistem_akademik --network monad:testnet:node
    """
    run(filepath=CONSTRUCTOR_PARAMS_FILEPATH)
