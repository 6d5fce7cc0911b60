"""AutoCity: settlement economy simulation with an autonomous construction planner."""
