#!/usr/bin/python3

from deploy_pipeline.cli import run
from deploy_pipeline.constants import CONSTRUCTOR_PARAMS_DIR

CONSTRUCTOR_PARAMS_FILEPATH = CONSTRUCTOR_PARAMS_DIR / "monad_testnet" / "pemilihan_bem.yml"


def main():
    """
    Deploys PemilihanBEM to Monad Testnet.

    ape run monad_testnet deploy_pemilihan_bem --network monad:testnet:node
    """
    run(filepath=CONSTRUCTOR_PARAMS_FILEPATH)
