"""
Kafka topics this service publishes to, named ``<domain>-<event-type>``.
"""


class KafkaTopics:
    DEPARTMENT_CREATED = "department-created"
    DEPARTMENT_UPDATED = "department-updated"
    DEPARTMENT_DELETED = "department-deleted"
    DEPARTMENT_REASSIGNED = "department-reassigned"

    POLICY_CREATED = "policy-created"
    POLICY_UPDATED = "policy-updated"
    POLICY_DELETED = "policy-deleted"

    JOB_CREATED = "job-created"
    JOB_DELETED = "job-deleted"
