"""
Constants for audit actions, entity types and actor roles
"""

# Audit actions
ACTION_CREATE_PERIOD = "CREATE_ATTENDANCE_PERIOD"
ACTION_FINALIZE_PERIOD = "FINALIZE_ATTENDANCE_PERIOD"
ACTION_UNLOCK_PERIOD = "UNLOCK_ATTENDANCE_PERIOD"
ACTION_MANUAL_EDIT = "ATTENDANCE_RECORD_MANUAL_EDIT"

# Audit entity types (table names)
ENTITY_PERIOD = "attendance_periods"
ENTITY_RECORD = "attendance_records"

# Actor roles carried in the token "role" claim
ROLE_EMPLOYEE = "EMPLOYEE"
ROLE_MANAGER = "MANAGER"
ROLE_HR = "HR"
ROLE_ADMIN = "ADMIN"

SERVICE_NAME = "attendance-finalization-backend"
