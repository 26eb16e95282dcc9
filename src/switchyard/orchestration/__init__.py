"""Orchestration module for Switchyard.

This module provides:
- SpecializationClassifier: derives a routing tag from task text and files
- AgentRegistry: lock-guarded, persisted agent records
- AssignmentEngine: routes tasks to agents under capacity rules
- LoadBalancer: moves excess load off over-capacity agents
- AgentMonitor: heartbeat tracking and disconnection
- Dispatcher: queue -> assignment -> executor -> completion
"""

from switchyard.orchestration.assignment import AssignmentEngine, select_agent
from switchyard.orchestration.balancer import (
    BalanceStatus,
    LoadBalancer,
    LoadMove,
    RebalanceSummary,
)
from switchyard.orchestration.classifier import (
    DEFAULT_PATTERNS,
    RegexFileExtractor,
    SpecializationClassifier,
    TaskFeatureExtractor,
)
from switchyard.orchestration.dispatcher import DispatchReport, Dispatcher
from switchyard.orchestration.executor import (
    ExecutionOutcome,
    LocalProcessExecutor,
    MockExecutor,
    RemoteWorkerExecutor,
    TaskExecutor,
)
from switchyard.orchestration.monitor import AgentMonitor, AgentOperation, OperationType
from switchyard.orchestration.registry import AgentRegistry, RegistryTransaction

__all__ = [
    # Classification
    "DEFAULT_PATTERNS",
    "RegexFileExtractor",
    "SpecializationClassifier",
    "TaskFeatureExtractor",
    # Registry
    "AgentRegistry",
    "RegistryTransaction",
    # Assignment
    "AssignmentEngine",
    "select_agent",
    # Balancing
    "BalanceStatus",
    "LoadBalancer",
    "LoadMove",
    "RebalanceSummary",
    # Monitoring
    "AgentMonitor",
    "AgentOperation",
    "OperationType",
    # Execution
    "DispatchReport",
    "Dispatcher",
    "ExecutionOutcome",
    "LocalProcessExecutor",
    "MockExecutor",
    "RemoteWorkerExecutor",
    "TaskExecutor",
]
