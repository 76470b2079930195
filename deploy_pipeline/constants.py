from enum import Enum
from pathlib import Path

import deploy_pipeline

#
# Filesystem
#

PACKAGE_DIR = Path(deploy_pipeline.__file__).parent
CONSTRUCTOR_PARAMS_DIR = PACKAGE_DIR / "constructor_params"
MANIFESTS_DIR = PACKAGE_DIR.parent / "deployments"

MANIFEST_JSON_FORMAT = {"indent": 2}

#
# Networks
#

LOCAL_NETWORK_NAMES = ("local", "localhost")

MONAD_TESTNET_EXPLORER = "https://testnet.monadexplorer.com/address/{address}"
MONAD_CURRENCY = "MON"

#
# Pipeline defaults
#

# +20% on top of the node's estimate
DEFAULT_GAS_MARGIN = (120, 100)

DEFAULT_CONFIRMATION_TIMEOUT = 300  # seconds

DEFAULT_MIN_BALANCE = "0.01 ether"

#
# Pipeline states
#


class PipelineState(Enum):
    PENDING = "pending"
    ESTIMATING = "estimating"
    SUBMITTING = "submitting"
    CONFIRMING = "confirming"
    VERIFYING = "verifying"
    PERSISTING = "persisting"
    DONE = "done"
    ERRORED = "errored"


#
# Verification outcomes
#

CHECK_OK = "ok"
CHECK_FAILED = "failed"
CHECK_UNAVAILABLE = "unavailable"
