"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the application to the outside world (upstream HTTP APIs, the file
system, the console) by implementing the interfaces defined in the domain layer.
"""
