from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class MeteringRead:
    """
    MeteringRead represents a single consumption sample
    for a billing interval, as supplied by the metering API.
    """

    # opaque date or timestamp identifying the sample
    date: "Any"
    start_time: "Any" = None
    end_time: "Any" = None
    # kWh, as received: number, numeric string or garbage
    consumed_energy: "Any" = None


@dataclass(frozen=True, slots=True)
class BillingLineItem:
    """
    BillingLineItem is the computed billing record
    for one MeteringRead.
    """

    date: "Any"
    start_time: "Any"
    end_time: "Any"
    # fixed 2-decimal string of the validated energy
    energy_consumed: "str"
    # fixed 2-decimal string of the validated rate
    unit_price: "str"
    # note - raw product of the unrounded energy and rate, never
    # rounded here. Differs in precision from the string fields above.
    amount: "float"

    def to_dict(self) -> "dict[str, Any]":
        return {
            "date": self.date,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "energyConsumed": self.energy_consumed,
            "unitPrice": self.unit_price,
            "amount": self.amount,
        }


@dataclass(frozen=True, slots=True)
class BillingResult:
    """
    BillingResult aggregates the line items of one billing run.
    Line items keep the order of the reads they were computed from.
    """

    total_energy: "str"
    total_cost: "str"
    line_items: "tuple[BillingLineItem, ...]" = field(default_factory=tuple)

    def to_dict(self) -> "dict[str, Any]":
        return {
            "totalEnergy": self.total_energy,
            "totalCost": self.total_cost,
            "lineItems": [item.to_dict() for item in self.line_items],
        }


@dataclass(frozen=True, slots=True)
class AuthScheme:
    """
    AuthScheme names one way of presenting the API
    credential to the upstream metering API.
    """

    name: "str"
    header: "str"
    bearer: "bool" = False

    def headers(self, token: "str") -> "dict[str, str]":
        value = f"Bearer {token}" if self.bearer else token
        return {self.header: value}
