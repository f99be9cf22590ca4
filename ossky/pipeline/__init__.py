from ossky.pipeline.runner import BotRunner

__all__ = ["BotRunner"]
