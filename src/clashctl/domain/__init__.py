"""Domain layer — pure rule models and document transforms.

Must never import from infrastructure, services, commands, or output.
"""
