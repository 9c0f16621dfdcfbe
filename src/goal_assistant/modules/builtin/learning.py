"""Learning tracker module."""

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


class LearningModule(LifeAreaModule):
    kind = ModuleKind.LEARNING
    name = "Learning Tracker"
    version = "1.0.0"
    icon = "book"
    color = "#10B981"
    metadata = ModuleMetadata(
        author="Goal Assistant Team",
        description="Track courses, skills and study sessions",
        keywords=("learning", "education", "courses", "skills", "study", "knowledge"),
        homepage="https://goalassistant.app/modules/learning",
    )
    components = ModuleComponents(
        dashboard="LearningDashboard",
        mobile_quick_add="LearningMobileQuickAdd",
        desktop_detail="LearningDesktopDetail",
        settings="LearningSettings",
    )
    goal_fields = (
        GoalField("subject", "string"),
        GoalField("course_name", "string"),
        GoalField("platform", "string"),
        GoalField("certificate", "boolean", description="Course awards a certificate"),
    )
    achievements = (
        ModuleAchievement(
            id="first_lesson",
            name="First Lesson",
            description="Complete your first learning session",
            icon="book",
            tier="bronze",
            xp_reward=25,
            criteria={"type": "count", "metric": "action:log_study_session", "target": 1},
        ),
        ModuleAchievement(
            id="dedicated_learner",
            name="Dedicated Learner",
            description="Study for 7 consecutive days",
            icon="calendar-check",
            tier="silver",
            xp_reward=100,
            criteria={"type": "streak", "target": 7},
        ),
        ModuleAchievement(
            id="course_completion",
            name="Course Finisher",
            description="Complete your first course",
            icon="graduation-cap",
            tier="gold",
            xp_reward=200,
            criteria={"type": "count", "metric": "goals_completed", "target": 1},
        ),
        ModuleAchievement(
            id="knowledge_seeker",
            name="Knowledge Seeker",
            description="Study for 100 hours total",
            icon="brain",
            tier="platinum",
            xp_reward=500,
            # progress values for study sessions are minutes
            criteria={"type": "count", "metric": "value:log_study_session", "target": 6000},
        ),
        ModuleAchievement(
            id="polyglot",
            name="Polyglot",
            description="Study 5 different subjects",
            icon="globe",
            tier="gold",
            xp_reward=300,
            criteria={"type": "count", "metric": "distinct:subject", "target": 5},
        ),
    )
    points = PointsConfig(
        actions={
            "log_study_session": PointsAction(5, "Log a study session"),
            "complete_lesson": PointsAction(15, "Complete a lesson or module"),
            "finish_course": PointsAction(100, "Complete an entire course", streak_bonus=False),
            "earn_certificate": PointsAction(
                50, "Earn a course certificate", difficulty_multiplier=False, streak_bonus=False
            ),
            "take_quiz": PointsAction(10, "Complete a quiz or assessment", streak_bonus=False),
        },
        difficulty_multipliers={"easy": 1.0, "medium": 1.3, "hard": 1.8, "expert": 2.5},
        streak_bonus_percentage=12,
    )
    permissions = (
        "read:learning_data",
        "write:learning_data",
        "read:course_progress",
        "write:course_progress",
    )
    capabilities = (
        ModuleCapability("session_tracking", "Session Tracking", "Track study sessions and time", required=True),
        ModuleCapability("course_management", "Course Management", "Manage enrolled courses", required=True),
        ModuleCapability("certificate_tracking", "Certificate Tracking", "Track earned certificates"),
        ModuleCapability("study_reminders", "Study Reminders", "Send reminders for scheduled study sessions"),
    )
    goal_completed_action = "finish_course"
    default_config = {
        "daily_study_minutes": 30,
        "reminders_enabled": False,
    }
