"""
twbuild.commands - Long-running commands layered on the build pipeline.
"""
