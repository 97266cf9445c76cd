"""
Seed a development database with team members, sample projects and metrics.

Projects are created and advanced through the stage workflow so each one
carries a realistic history. No notification emails are sent.
"""
import asyncio
from datetime import datetime, timedelta

from isp_tracker.database import AsyncSessionLocal, create_tables, engine
from isp_tracker.models import BadgeType, ServiceType, TeamMemberRole
from isp_tracker.storage.sql import SqlProjectStore
from isp_tracker.workflow.engine import StageWorkflow
from isp_tracker.workflow.stages import ProjectStage

TEAM = [
    ("John Smith", TeamMemberRole.PROJECT_MANAGER, "john.smith@isptracker.com", "555-123-4567"),
    ("Sarah Johnson", TeamMemberRole.NETWORK_ENGINEER, "sarah.johnson@isptracker.com", "555-234-5678"),
    ("Michael Chen", TeamMemberRole.FIELD_TECHNICIAN, "michael.chen@isptracker.com", "555-345-6789"),
    ("Emily Rodriguez", TeamMemberRole.SALES_REPRESENTATIVE, "emily.rodriguez@isptracker.com", "555-456-7890"),
    ("David Wilson", TeamMemberRole.NOC_ENGINEER, "david.wilson@isptracker.com", "555-567-8901"),
]

# (fields, owner role, stage to walk the project up to)
PROJECTS = [
    ({
        "customer_name": "Acme Corporation",
        "contact_person": "Robert Johnson",
        "email": "info@acme.com",
        "phone": "555-111-2222",
        "address": "123 Business Park, Suite 100, San Francisco, CA 94107",
        "service_type": ServiceType.FIBER,
        "bandwidth": 1000,
        "requirements": "Dedicated fiber connection with 99.99% uptime SLA. Redundant path required.",
        "expected_completion": "2025-05-30",
    }, TeamMemberRole.PROJECT_MANAGER, ProjectStage.SURVEY),
    ({
        "customer_name": "TechStart Innovations",
        "contact_person": "Maria Garcia",
        "email": "info@techstart.com",
        "phone": "555-222-3333",
        "address": "456 Innovation Hub, Austin, TX 78701",
        "service_type": ServiceType.WIRELESS,
        "bandwidth": 200,
        "requirements": "Point-to-point wireless link for a new office. Roof access available.",
        "expected_completion": "2025-04-15",
    }, TeamMemberRole.NETWORK_ENGINEER, ProjectStage.REQUIREMENTS),
    ({
        "customer_name": "Global Financial Services",
        "contact_person": "James Wilson",
        "email": "contact@globalfinancial.com",
        "phone": "555-333-4444",
        "address": "789 Finance Tower, Floor 20, New York, NY 10004",
        "service_type": ServiceType.FIBER,
        "bandwidth": 10000,
        "requirements": "Ultra-low latency connection to financial data centers.",
        "expected_completion": "2025-06-30",
    }, TeamMemberRole.PROJECT_MANAGER, ProjectStage.CONFIRMATION),
    ({
        "customer_name": "City Public Schools District",
        "contact_person": "Elizabeth Chen",
        "email": "it@cityschools.edu",
        "phone": "555-444-5555",
        "address": "1 Education Way, Springfield, IL 62701",
        "service_type": ServiceType.WIRELESS,
        "bandwidth": 500,
        "requirements": "Campus-wide wireless backhaul between six school buildings.",
        "expected_completion": "2025-08-31",
    }, TeamMemberRole.NETWORK_ENGINEER, ProjectStage.INSTALLATION),
    ({
        "customer_name": "Riverside Medical Center",
        "contact_person": "Dr. Samuel Park",
        "email": "facilities@riversidemed.org",
        "phone": "555-666-7777",
        "address": "200 River Road, Portland, OR 97201",
        "service_type": ServiceType.FIBER,
        "bandwidth": 2000,
        "requirements": "Diverse-route fiber for the imaging department.",
        "expected_completion": "2025-03-31",
    }, TeamMemberRole.PROJECT_MANAGER, ProjectStage.HANDOVER),
]


async def _seed():
    async with AsyncSessionLocal() as session:
        store = SqlProjectStore(session)
        workflow = StageWorkflow(store)

        members = await store.list_team_members()
        if not members:
            print("Adding team members...")
            for name, role, email, phone in TEAM:
                await store.create_team_member({"name": name, "role": role, "email": email, "phone": phone})
            await store.commit()
            members = await store.list_team_members()
        by_role = {m.role: m for m in members}

        if await store.list_projects():
            print("Projects already present, skipping sample projects.")
            return

        print("Adding sample projects...")
        for fields, owner_role, final_stage in PROJECTS:
            owner = by_role.get(owner_role, members[0])
            project = await workflow.start_project({**fields, "assigned_to": owner.id})
            for stage in range(int(ProjectStage.REQUIREMENTS) + 1, int(final_stage) + 1):
                await workflow.advance_stage(project.id, stage, changed_by=owner.id)

            await store.create_task({
                "project_id": project.id,
                "title": f"Kick-off call with {fields['contact_person']}",
                "assigned_to": owner.id,
                "stage": int(ProjectStage.REQUIREMENTS),
                "is_completed": True,
                "due_date": datetime.utcnow() - timedelta(days=7),
            })
            await store.create_task({
                "project_id": project.id,
                "title": "Schedule site survey",
                "assigned_to": by_role.get(TeamMemberRole.FIELD_TECHNICIAN, owner).id,
                "stage": int(ProjectStage.SURVEY),
                "is_completed": final_stage > ProjectStage.SURVEY,
                "due_date": datetime.utcnow() + timedelta(days=7),
            })
            print(f"  {project.project_code} {project.customer_name} -> {ProjectStage(final_stage).label}")
        await store.commit()

        print("Adding badges and performance metrics...")
        pm = by_role[TeamMemberRole.PROJECT_MANAGER]
        await store.award_badge({"team_member_id": pm.id, "badge_type": BadgeType.FIRST_MILE})
        await store.award_badge({"team_member_id": pm.id, "badge_type": BadgeType.ON_TIME})
        await store.upsert_performance_metric(pm.id, {
            "projects_completed": 1,
            "average_completion_time": 42.0,
            "customer_satisfaction_score": 4.8,
        })

        year = datetime.utcnow().year
        for month, completed in ((1, 2), (2, 3), (3, 1)):
            await store.upsert_monthly_performance(year, month, {
                "projects_completed": completed,
                "average_completion_time": 35.0 + month,
                "average_customer_satisfaction": 4.5,
            })
        await store.commit()


async def seed_database():
    try:
        await create_tables()
        await _seed()
    finally:
        await engine.dispose()
    print("\nDatabase seeded.")


if __name__ == "__main__":
    asyncio.run(seed_database())
