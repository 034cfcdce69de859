"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from paylog.app.api.v1.endpoints import (
    auth, admin, master_data, invoices, payments, credit_notes, ledger, tds
)

router = APIRouter()

# Authentication
router.include_router(auth.router)

# User management, audit trail, maintenance
router.include_router(admin.router)

# Vendors, entities, categories, invoice profiles, payment types
router.include_router(master_data.router)

# Invoice, payment and credit note workflow
router.include_router(invoices.router)
router.include_router(payments.router)
router.include_router(credit_notes.router)

# Reporting
router.include_router(ledger.router)
router.include_router(tds.router)
