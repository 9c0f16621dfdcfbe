"""Fitness tracker module."""

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


class FitnessModule(LifeAreaModule):
    kind = ModuleKind.FITNESS
    name = "Fitness Tracker"
    version = "1.0.0"
    icon = "dumbbell"
    color = "#EF4444"
    metadata = ModuleMetadata(
        author="Goal Assistant Team",
        description="Fitness tracking for workouts, nutrition and health goals",
        keywords=("fitness", "workout", "health", "nutrition", "exercise", "calories"),
        homepage="https://goalassistant.app/modules/fitness",
    )
    components = ModuleComponents(
        dashboard="FitnessDashboard",
        mobile_quick_add="FitnessMobileQuickAdd",
        desktop_detail="FitnessDesktopDetail",
        settings="FitnessSettings",
    )
    goal_fields = (
        GoalField(
            "workout_type",
            "string",
            choices=("strength", "cardio", "flexibility", "sports", "other"),
        ),
        GoalField("duration_minutes", "integer", description="Target duration per session"),
        GoalField("calories_target", "integer", description="Daily calorie burn target"),
    )
    achievements = (
        ModuleAchievement(
            id="first_workout",
            name="First Steps",
            description="Complete your first workout",
            icon="trophy",
            tier="bronze",
            xp_reward=50,
            criteria={"type": "count", "metric": "action:log_workout", "target": 1},
        ),
        ModuleAchievement(
            id="week_warrior",
            name="Week Warrior",
            description="Complete 7 workouts in a week",
            icon="fire",
            tier="silver",
            xp_reward=100,
            criteria={"type": "count", "metric": "action:log_workout", "target": 7, "window_days": 7},
        ),
        ModuleAchievement(
            id="consistency_king",
            name="Consistency King",
            description="Maintain a 30-day activity streak",
            icon="calendar",
            tier="gold",
            xp_reward=250,
            criteria={"type": "streak", "target": 30},
        ),
        ModuleAchievement(
            id="marathon_master",
            name="Marathon Master",
            description="Complete 100 total workouts",
            icon="running",
            tier="platinum",
            xp_reward=500,
            criteria={"type": "count", "metric": "action:log_workout", "target": 100},
        ),
    )
    points = PointsConfig(
        actions={
            "log_workout": PointsAction(10, "Log a workout session"),
            "complete_fitness_goal": PointsAction(25, "Complete a fitness goal"),
            "hit_calorie_target": PointsAction(5, "Reach daily calorie burn target", difficulty_multiplier=False),
            "track_nutrition": PointsAction(3, "Log nutritional information", difficulty_multiplier=False),
        },
        streak_bonus_percentage=15,
    )
    permissions = (
        "read:fitness_data",
        "write:fitness_data",
        "read:health_metrics",
        "write:health_metrics",
    )
    capabilities = (
        ModuleCapability("workout_tracking", "Workout Tracking", "Track workouts and exercises", required=True),
        ModuleCapability("calorie_tracking", "Calorie Tracking", "Monitor calories burned during activities"),
        ModuleCapability("nutrition_logging", "Nutrition Logging", "Log food intake and nutritional information"),
        ModuleCapability("workout_reminders", "Workout Reminders", "Send reminders for scheduled workouts"),
    )
    goal_completed_action = "complete_fitness_goal"
    default_config = {
        "units": "metric",
        "weekly_workout_target": 3,
        "reminders_enabled": False,
    }
