from whatsterm.commands.ping_command import PingCommand

__all__ = ["PingCommand"]
