from typing import Tuple

import click
from eth_utils import to_checksum_address

from deploy_pipeline.gas import validate_margin


class MinInt(click.ParamType):
    name = "minint"

    def __init__(self, min_value):
        self.min_value = min_value

    def convert(self, value, param, ctx):
        try:
            ivalue = int(value)
        except ValueError:
            self.fail(f"{value} is not a valid integer", param, ctx)
        if ivalue < self.min_value:
            self.fail(
                f"{value} is less than the minimum allowed value of {self.min_value}", param, ctx
            )
        return ivalue


class GasMargin(click.ParamType):
    """A gas margin ratio written as NUMERATOR/DENOMINATOR, e.g. 120/100"""

    name = "gas_margin"

    def convert(self, value, param, ctx) -> Tuple[int, int]:
        if isinstance(value, tuple):
            return value
        try:
            numerator, denominator = (int(part) for part in str(value).split("/"))
            return validate_margin((numerator, denominator))
        except ValueError as error:
            self.fail(f"{value} is not a valid gas margin: {error}", param, ctx)


class ChecksumAddress(click.ParamType):
    name = "checksum_address"

    def convert(self, value, param, ctx):
        try:
            value = to_checksum_address(value=value)
        except ValueError:
            self.fail("Invalid ethereum address", param, ctx)
        else:
            return value
