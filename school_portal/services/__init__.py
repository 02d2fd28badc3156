"""Business logic services used by the routers.

Services are small classes built around a `Session`. They validate what
the schemas cannot express (foreign keys, uniqueness, cross-field rules),
execute domain logic, persist through repositories and return serialized
payloads. Failures are raised as `school_portal.errors.ApiError`.
"""
