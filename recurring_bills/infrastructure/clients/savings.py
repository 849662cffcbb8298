"""Savings goal API client"""

from decimal import Decimal
from typing import Any

from recurring_bills.infrastructure.clients.base import FinanceAPIClient


class SavingsGoalClient(FinanceAPIClient):
    """Client for savings goal deposits and withdrawals"""

    service_name = "savings_goals"
    prefix = "/api/savingsgoals"

    async def add_deposit(self, goal_id: str, amount: Decimal) -> Any:
        return await self._request("POST", f"{self.prefix}/{goal_id}/deposit", json={"amount": float(amount)})

    async def withdraw(self, goal_id: str, amount: Decimal) -> Any:
        return await self._request("POST", f"{self.prefix}/{goal_id}/withdraw", json={"amount": float(amount)})
