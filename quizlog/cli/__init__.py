"""Command-line interface for quizlog."""
