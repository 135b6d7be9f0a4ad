from fastapi import APIRouter

from app.api.v1.endpoints import auth, dashboard, indents, approval, technician, work, inspection, payment

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
api_router.include_router(indents.router, prefix="/indents", tags=["indents"])
api_router.include_router(approval.router, prefix="/approvals", tags=["approval"])
api_router.include_router(technician.router, prefix="/technician-assignments", tags=["technician-assignment"])
api_router.include_router(work.router, prefix="/work-tracking", tags=["work-tracking"])
api_router.include_router(inspection.router, prefix="/inspections", tags=["inspection"])
api_router.include_router(payment.router, prefix="/payments", tags=["payment"])
