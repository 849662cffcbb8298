from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict
import uuid

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from recurring_bills.utils.date_utils import add_months


def _step(iso: str, frequency: str, direction: int) -> str:
    due = date.fromisoformat(iso[:10])
    if frequency == "weekly":
        return (due + timedelta(weeks=direction)).isoformat()
    months = {"quarterly": 3, "yearly": 12}.get(frequency, 1)
    return add_months(due, months * direction).isoformat()


class MockState:
    """In-memory bills, loan payments and savings goals"""

    def __init__(self):
        self.bills: Dict[str, Dict[str, Any]] = {}
        self.payments: Dict[str, Dict[str, Any]] = {}
        self.goals: Dict[str, Dict[str, Any]] = {}
        self.faults: Dict[str, int] = {}  # "<operation>" -> status code to answer with

    def add_bill(self, **fields) -> Dict[str, Any]:
        bill = {
            "id": fields.pop("id", None) or str(uuid.uuid4()),
            "name": "Bill",
            "amount": 10.0,
            "category": "other",
            "frequency": "monthly",
            "dueDay": 1,
            "nextDueDate": date.today().isoformat(),
            "autoPay": False,
            "reminderDays": 3,
            "isActive": True,
            "isPaid": False,
            "notes": None,
        }
        bill.update(fields)
        self.bills[bill["id"]] = bill
        return bill

    def add_goal(self, goal_id: str, current_amount: float = 0.0) -> Dict[str, Any]:
        self.goals[goal_id] = {"id": goal_id, "currentAmount": current_amount}
        return self.goals[goal_id]

    def add_payment(self, **fields) -> Dict[str, Any]:
        payment = {"id": fields.pop("id", None) or str(uuid.uuid4()), "interestAmount": 0.0, "notes": None}
        payment.update(fields)
        self.payments[payment["id"]] = payment
        return payment

    def check(self, operation: str) -> None:
        status = self.faults.get(operation)
        if status:
            raise HTTPException(status_code=status, detail=f"Injected failure for {operation}")


def create_mock_app(state: MockState | None = None) -> FastAPI:
    app = FastAPI(title="Mock Finance API", version="1.0.0")
    app.state.mock = state or MockState()
    mock: MockState = app.state.mock

    @app.exception_handler(HTTPException)
    async def message_body(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"message": exc.detail})

    @app.get("/health")
    def health():
        return {"status": "ok"}

    # Recurring bills

    @app.get("/api/recurringbills")
    def list_bills():
        mock.check("bills.list")
        return sorted(mock.bills.values(), key=lambda b: b["nextDueDate"])

    @app.get("/api/recurringbills/summary")
    def summary():
        mock.check("bills.summary")
        active = [b for b in mock.bills.values() if b["isActive"]]
        return {
            "totalBills": len(mock.bills),
            "activeBills": len(active),
            "inactiveBills": len(mock.bills) - len(active),
            "totalMonthlyAmount": sum(b["amount"] for b in active),
            "upcomingBills": 0,
            "overdueBills": 0,
        }

    @app.post("/api/recurringbills")
    async def create_bill(request: Request):
        return mock.add_bill(**(await request.json()))

    @app.put("/api/recurringbills/{bill_id}")
    async def update_bill(bill_id: str, request: Request):
        if bill_id not in mock.bills:
            raise HTTPException(status_code=404, detail="Bill not found")
        mock.bills[bill_id].update(await request.json())
        return mock.bills[bill_id]

    @app.delete("/api/recurringbills/{bill_id}", status_code=204)
    def delete_bill(bill_id: str):
        mock.bills.pop(bill_id, None)

    @app.post("/api/recurringbills/{bill_id}/mark-paid")
    def mark_paid(bill_id: str):
        mock.check("bills.mark_paid")
        bill = mock.bills.get(bill_id)
        if bill is None:
            raise HTTPException(status_code=404, detail="Bill not found")
        bill["isPaid"] = True
        bill["nextDueDate"] = _step(bill["nextDueDate"], bill["frequency"], 1)
        return bill

    @app.post("/api/recurringbills/{bill_id}/unmark-paid")
    def unmark_paid(bill_id: str):
        mock.check("bills.unmark_paid")
        bill = mock.bills.get(bill_id)
        if bill is None:
            raise HTTPException(status_code=404, detail="Bill not found")
        bill["isPaid"] = False
        bill["nextDueDate"] = _step(bill["nextDueDate"], bill["frequency"], -1)
        return bill

    # Loan payments

    @app.get("/api/loanpayments/by-loan/{loan_id}")
    def payments_by_loan(loan_id: str):
        mock.check("loanpayments.list")
        return [p for p in mock.payments.values() if p["loanId"] == loan_id]

    @app.post("/api/loanpayments")
    async def create_payment(request: Request):
        mock.check("loanpayments.create")
        return mock.add_payment(**(await request.json()))

    @app.delete("/api/loanpayments/{payment_id}", status_code=204)
    def delete_payment(payment_id: str):
        mock.check("loanpayments.delete")
        if mock.payments.pop(payment_id, None) is None:
            raise HTTPException(status_code=404, detail="Payment not found")

    # Savings goals

    @app.post("/api/savingsgoals/{goal_id}/deposit")
    async def deposit(goal_id: str, request: Request):
        mock.check("savings.deposit")
        goal = mock.goals.get(goal_id)
        if goal is None:
            raise HTTPException(status_code=404, detail=f"Savings goal {goal_id} not found")
        amount = (await request.json())["amount"]
        if amount <= 0:
            raise HTTPException(status_code=400, detail="Deposit amount must be greater than zero")
        goal["currentAmount"] = float(Decimal(str(goal["currentAmount"])) + Decimal(str(amount)))
        return goal

    @app.post("/api/savingsgoals/{goal_id}/withdraw")
    async def withdraw(goal_id: str, request: Request):
        mock.check("savings.withdraw")
        goal = mock.goals.get(goal_id)
        if goal is None:
            raise HTTPException(status_code=404, detail=f"Savings goal {goal_id} not found")
        amount = (await request.json())["amount"]
        remaining = Decimal(str(goal["currentAmount"])) - Decimal(str(amount))
        if remaining < 0:
            raise HTTPException(status_code=400, detail="Insufficient funds in savings goal")
        goal["currentAmount"] = float(remaining)
        return goal

    return app


app = create_mock_app()
