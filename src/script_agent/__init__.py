# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

"""
Script Agent: orchestration core for an AI scripting assistant.
"""

from script_agent.agent.service import AgentService, AgentState
from script_agent.container import AgentContainer

__version__ = "0.1.0"

__all__ = ["AgentContainer", "AgentService", "AgentState", "__version__"]
