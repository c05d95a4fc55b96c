"""Dashboard schemas."""
from decimal import Decimal
from typing import List
from pydantic import BaseModel

from smartpos.schemas.product import ProductResponse
from smartpos.schemas.sale import TodaySummary


class DashboardOverview(BaseModel):
    today: TodaySummary
    total_products: int
    low_stock_count: int
    total_customers: int
    outstanding_supplier_balance: Decimal
    month_expenses: Decimal


class InventoryAlerts(BaseModel):
    low_stock: List[ProductResponse]
    out_of_stock: List[ProductResponse]
