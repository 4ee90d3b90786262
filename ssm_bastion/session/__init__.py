"""Launchers that hand a resolved instance to the external ``aws ssm start-session`` client."""
