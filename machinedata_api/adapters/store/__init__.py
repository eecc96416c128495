"""Machine data store adapters.

Services talk to ``AbstractMachineStore`` only; MongoDB backs production and an
in-process store backs tests and local runs.
"""
