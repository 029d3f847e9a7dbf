from fastapi import APIRouter
from app.api.v1 import (
    admin,
    appointments,
    auth,
    clinic_billing,
    clinic_doctors,
    clinic_ipd,
    clinic_lab,
    clinic_patients,
    clinic_pharmacy,
    clinic_prescriptions,
    clinic_queue,
    clinic_schedules,
    clinic_staff,
    clinics,
    lab_results,
    patient,
    reviews,
    search,
    verification,
)

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(search.router, tags=["search"])
api_router.include_router(verification.router, tags=["verification"])
api_router.include_router(appointments.router, tags=["appointments"])
api_router.include_router(patient.router, prefix="/patient", tags=["patient"])
api_router.include_router(lab_results.router, prefix="/lab-results", tags=["lab-results"])
api_router.include_router(reviews.router, prefix="/reviews", tags=["reviews"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
api_router.include_router(clinics.router, prefix="/clinic", tags=["clinic"])
api_router.include_router(clinic_queue.router, prefix="/clinic", tags=["clinic-queue"])
api_router.include_router(clinic_staff.router, prefix="/clinic", tags=["clinic-staff"])
api_router.include_router(clinic_billing.router, prefix="/clinic", tags=["clinic-billing"])
api_router.include_router(clinic_pharmacy.router, prefix="/clinic", tags=["clinic-pharmacy"])
api_router.include_router(clinic_ipd.router, prefix="/clinic", tags=["clinic-ipd"])
api_router.include_router(clinic_lab.router, prefix="/clinic", tags=["clinic-lab"])
api_router.include_router(clinic_doctors.router, prefix="/clinic", tags=["clinic-doctors"])
api_router.include_router(clinic_schedules.router, prefix="/clinic", tags=["clinic-schedules"])
api_router.include_router(clinic_patients.router, prefix="/clinic", tags=["clinic-patients"])
api_router.include_router(clinic_prescriptions.router, prefix="/clinic", tags=["clinic-prescriptions"])
