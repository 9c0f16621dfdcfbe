"""Home improvement projects module."""

from __future__ import annotations

from goal_assistant.modules.base import (
    GoalField,
    LifeAreaModule,
    ModuleAchievement,
    ModuleCapability,
    ModuleComponents,
    ModuleKind,
    ModuleMetadata,
    PointsAction,
    PointsConfig,
)


class HomeProjectsModule(LifeAreaModule):
    kind = ModuleKind.HOME_PROJECTS
    name = "Home Projects"
    version = "1.0.0"
    icon = "house"
    color = "#3B82F6"
    metadata = ModuleMetadata(
        author="Goal Assistant Team",
        description="Home improvement, renovation and organization projects with task tracking",
        keywords=("home", "projects", "renovation", "improvement", "tasks", "organization"),
        homepage="https://goalassistant.app/modules/home-projects",
    )
    components = ModuleComponents(
        dashboard="HomeProjectsDashboard",
        mobile_quick_add="HomeProjectsMobileQuickAdd",
        desktop_detail="HomeProjectsDesktopDetail",
        settings="HomeProjectsSettings",
    )
    goal_fields = (
        GoalField("room", "string"),
        GoalField(
            "project_type",
            "string",
            choices=("renovation", "repair", "organization", "maintenance", "decoration"),
        ),
        GoalField("budget", "number", description="Planned budget"),
        GoalField("estimated_hours", "number"),
    )
    achievements = (
        ModuleAchievement(
            id="first_project",
            name="First Project",
            description="Start your first home project",
            icon="house",
            tier="bronze",
            xp_reward=25,
            criteria={"type": "count", "metric": "goals_created", "target": 1},
        ),
        ModuleAchievement(
            id="task_master",
            name="Task Master",
            description="Complete 50 project tasks",
            icon="check-circle",
            tier="silver",
            xp_reward=150,
            criteria={"type": "count", "metric": "action:complete_task", "target": 50},
        ),
        ModuleAchievement(
            id="project_finisher",
            name="Project Finisher",
            description="Complete your first project",
            icon="trophy",
            tier="gold",
            xp_reward=200,
            criteria={"type": "count", "metric": "goals_completed", "target": 1},
        ),
        ModuleAchievement(
            id="home_improvement_hero",
            name="Home Improvement Hero",
            description="Complete 10 home projects",
            icon="hammer",
            tier="platinum",
            xp_reward=500,
            criteria={"type": "count", "metric": "goals_completed", "target": 10},
        ),
    )
    points = PointsConfig(
        actions={
            "start_project": PointsAction(10, "Start a new home project", streak_bonus=False),
            "complete_task": PointsAction(8, "Complete a project task"),
            "finish_project": PointsAction(50, "Complete an entire project", streak_bonus=False),
            "log_time": PointsAction(2, "Log time spent on projects", difficulty_multiplier=False),
        },
        difficulty_multipliers={"easy": 1.0, "medium": 1.4, "hard": 2.0, "expert": 3.0},
        streak_bonus_percentage=8,
    )
    permissions = (
        "read:project_data",
        "write:project_data",
        "read:task_data",
        "write:task_data",
    )
    capabilities = (
        ModuleCapability("project_management", "Project Management", "Create and manage projects", required=True),
        ModuleCapability("task_tracking", "Task Tracking", "Break projects into manageable tasks", required=True),
        ModuleCapability("budget_tracking", "Budget Tracking", "Track project costs and budgets"),
        ModuleCapability("time_tracking", "Time Tracking", "Track time spent on projects"),
    )
    goal_created_action = "start_project"
    goal_completed_action = "finish_project"
    default_config = {
        "currency": "USD",
        "show_budget": True,
    }
