"""
Test factories for generating realistic request payloads.

Uses factory_boy for declarative test data generation.
"""

from .work_order import WorkOrderPayloadFactory
from .cost_line import CostLinePayloadFactory
from .income import QuotePayloadFactory, InvoicePayloadFactory, PaymentPayloadFactory
from .service_item import ServiceItemPayloadFactory

__all__ = [
    "WorkOrderPayloadFactory",
    "CostLinePayloadFactory",
    "QuotePayloadFactory",
    "InvoicePayloadFactory",
    "PaymentPayloadFactory",
    "ServiceItemPayloadFactory",
]
