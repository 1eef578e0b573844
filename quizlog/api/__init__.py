"""HTTP persistence API for quizlog."""
