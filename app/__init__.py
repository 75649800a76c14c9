"""
Application Package

- context: AppContext, the dependency-injected object wiring every component
"""
