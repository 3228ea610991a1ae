import os
import sys

import pytest


def pytest_sessionstart(session):
    # Ensure project root is on sys.path so the top-level modules resolve
    project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    if project_root not in sys.path:
        sys.path.insert(0, project_root)


BANK_TEXT = """
    HDFC Bank
    Account Number: 50100123456789
    Statement Period: 01/01/2024 to 31/01/2024
    Date | Narration | Debit | Credit | Balance
    01/01/2024 | SALARY CREDIT | | 55,000.00 | 80,430.50
    ------------------------------
    05/01/2024 | RENT PAYMENT DR | 22,000.00 | | 58,430.50
    07/01/2024 | UPI/ATM WDL REF 1234567890AB | 1,000.00 | 0.00 | 57,430.50
    10/01/2024 | INTEREST | 57,430.50
    Closing Balance: 57,430.50
    12/01/2024 | AFTER SUMMARY | 1.00 | 2.00
"""

TAX_TEXT = """
    FORM 26AS
    Assessment Year: 2024-25
    Name of Assessee: Ravi Kumar
    PAN of Assessee: ABCDE1234F
    Name of Deductor: XYZ Technologies Pvt Ltd
    TAN of Deductor: MUMX12345A
    Total Amount Paid/Credited: 6,00,000.00
    Total Tax Deducted: 60,000.00
    Total TDS Deposited: 60,000.00
    Sr No Section Transaction Date Status of Booking Date of Booking Amount Paid/Credited Tax Deducted TDS Deposited
    1 192 30-Apr-2024 F 07-May-2024 50,000.00 5,000.00 5,000.00
    2 192 31-May-2024 U 07-Jun-2024 50,000.00 5,000.00 5,000.00
    Name of Deductor: ABC Bank Ltd
    TAN: DELA54321B
    Section Transaction Date Status Amount
    194A 31/03/2025 P 12,000.00 1,200.00 1,200.00 Remarks: interest on FD
    Grand Total 12,000.00
"""


@pytest.fixture
def bank_text():
    return BANK_TEXT


@pytest.fixture
def tax_text():
    return TAX_TEXT
