"""sitedeploy - publish applications onto a web-hosting engine."""

__version__ = "0.1.0"
