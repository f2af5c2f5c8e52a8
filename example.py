"""Example usage of the ES/DB comparison engine."""

import json
import logging

from esdbcompare import CompareConfig, CompareEngine, CompareError

# Projects as stored in the database
db_projects = [
    {
        "id": 1001,
        "name": "Website redesign",
        "status": "active",
        "updatedAt": "2025-02-02T11:00:00Z",  # Will be ignored
        "members": [
            {"id": 1, "userId": 40051, "role": "manager"},
            {"id": 2, "userId": 40052, "role": "customer"},
        ],
        "invites": [],
        "attachments": [{"id": 7, "title": "Brief", "size": 1024}],
        "phases": [
            {
                "id": 501,
                "name": "Design",
                "products": [
                    {"id": 9001, "name": "Wireframes", "estimatedPrice": 500},
                    {"id": 9002, "name": "Mockups", "estimatedPrice": 800},
                ],
            }
        ],
    },
    {"id": 1002, "name": "Mobile app", "status": "draft"},
]

# The same projects as indexed in Elasticsearch
es_projects = [
    {
        "id": 1001,
        "name": "Website redesign",
        "status": "reviewed",  # Field mismatch
        "updatedAt": "2025-02-02T11:05:00Z",
        "members": [
            {"id": 2, "userId": 40052, "role": "customer"},  # Order does not matter
            {"id": 1, "userId": 40051, "role": "copilot"},  # Role mismatch
        ],
        "invites": [{"id": 3, "email": "someone@example.com"}],  # Only in ES
        "attachments": [{"id": 7, "title": "Brief", "size": 1024}],
        "phases": [
            {
                "id": 501,
                "name": "Design",
                "products": [
                    {"id": 9001, "name": "Wireframes", "estimatedPrice": 550},  # Price mismatch
                ],  # Mockups only in the DB
            }
        ],
    },
    {"id": 1003, "name": "API migration", "status": "active"},  # Only in ES
]


def main():
    print("=" * 60)
    print("ES/DB Comparison Engine - Example")
    print("=" * 60)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    # Create engine with default config
    engine = CompareEngine()

    try:
        report = engine.compare(db_projects, es_projects)
    except CompareError as e:
        print(f"\nError: {e}")
        return

    print(f"\nConsistent: {report.is_consistent}")
    print(f"\nExecution:")
    print(f"  Duration: {report.execution.duration_ms}ms")
    print(f"  Engine Version: {report.execution.engine_version}")

    print(f"\nSummary:")
    print(f"  Projects with inconsistencies: {report.meta.total_projects}")
    print(f"  Inconsistent objects: {report.meta.total_objects}")
    print(f"  Ignored changes: {report.meta.ignored}")

    for delta in report.db_only:
        print(f"\n  Project {delta.id} only in DB")
    for delta in report.es_only:
        print(f"  Project {delta.id} only in ES")

    for project_id, bucket in report.root_mismatch.items():
        print(f"\nProject {project_id} ({bucket.counts} inconsistencies):")
        for delta in bucket.entity:
            print(f"  - Project.{delta.path}: {delta.kind.value}")
        for model_name, association in bucket.associations.items():
            for id, deltas in association.mismatches.items():
                paths = ", ".join(d.path for d in deltas)
                print(f"  - {model_name} {id}: {paths}")
            for delta in association.db_only:
                print(f"  - {model_name} {delta.id} only in DB")
            for delta in association.es_only:
                print(f"  - {model_name} {delta.id} only in ES")

    print("\n" + "-" * 60)
    print("Full JSON Report:")
    print(json.dumps(report.to_dict(), indent=2))


def example_with_config():
    """Example with custom ignore rules."""
    print("\n" + "=" * 60)
    print("Example with Custom Ignore Rules")
    print("=" * 60)

    config = CompareConfig(ignored_paths={
        "project": ["$..updatedAt", "$[*].members[*].role", "$[*].status"],
    })
    report = CompareEngine(config).compare(db_projects, es_projects)

    print(f"\nInconsistent objects: {report.meta.total_objects}")
    print(f"Ignored changes: {report.meta.ignored}")


if __name__ == "__main__":
    main()
    example_with_config()
