"""
Split-payment reconciliation

A patient can settle one appointment with several payment methods. The amount
handed over may exceed the price (cash change), match it, or fall short.
"""

from dataclasses import dataclass, field

PAYMENT_METHOD_LABELS = {
    "dinheiro": "Dinheiro",
    "cartao_credito": "Cartão de Crédito",
    "cartao_debito": "Cartão de Débito",
    "pix": "PIX",
    "cheque": "Cheque",
    "transferencia_eletronica": "Transferência Eletrônica",
}


@dataclass
class TransactionInput:
    payment_method: str
    amount_in_cents: int


@dataclass
class PaymentBreakdown:
    total_amount_in_cents: int
    client_input_in_cents: int
    paid_amount_in_cents: int
    remaining_amount_in_cents: int
    change_in_cents: int
    status: str
    transactions: list[TransactionInput] = field(default_factory=list)


def payment_status(paid_in_cents: int, total_in_cents: int) -> str:
    if paid_in_cents >= total_in_cents:
        return "pago"
    if paid_in_cents > 0:
        return "parcial"
    return "pendente"


def reconcile_payment(total_amount_in_cents: int, transactions: list[TransactionInput]) -> PaymentBreakdown:
    """
    Work out paid, remaining and change amounts for a set of transactions.

    When the patient hands over more than the total, each recorded transaction
    is scaled down proportionally. Scaled amounts are floored and the leftover
    cents go to the last transaction so the stored amounts sum to the paid amount.
    """
    client_input = sum(t.amount_in_cents for t in transactions)
    paid = min(client_input, total_amount_in_cents)
    remaining = max(0, total_amount_in_cents - paid)
    change = max(0, client_input - total_amount_in_cents)

    recorded = list(transactions)
    if client_input > total_amount_in_cents and client_input > 0:
        recorded = [
            TransactionInput(
                payment_method=t.payment_method,
                amount_in_cents=total_amount_in_cents * t.amount_in_cents // client_input,
            )
            for t in transactions
        ]
        recorded[-1].amount_in_cents += paid - sum(t.amount_in_cents for t in recorded)

    return PaymentBreakdown(
        total_amount_in_cents=total_amount_in_cents,
        client_input_in_cents=client_input,
        paid_amount_in_cents=paid,
        remaining_amount_in_cents=remaining,
        change_in_cents=change,
        status=payment_status(paid, total_amount_in_cents),
        transactions=recorded,
    )
