"""
Directory Service

Departments and the agents that belong to them. Agent counters are filled
in from the assignment ledger on every read.
"""

import logging
from typing import Any, Dict, List, Optional

from orderdesk.models.domain import Agent, Department
from orderdesk.models.forms import AgentForm, DepartmentForm, parse_form
from orderdesk.services.stats import with_counters
from orderdesk.services.store import OrderStore
from orderdesk.utils.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_DEPARTMENTS = ["Management", "Support", "Sales"]


class DirectoryService:
    """Manages departments and agents in the order store"""

    def __init__(self, store: OrderStore):
        self.store = store

    def ensure_defaults(self) -> List[Department]:
        """Create the default departments in a store that has none"""
        if not self.store.list_departments():
            for name in DEFAULT_DEPARTMENTS:
                self.store.create_department(name)
            logger.info(f"Created default departments: {', '.join(DEFAULT_DEPARTMENTS)}")
        return self.list_departments()

    def list_departments(self) -> List[Department]:
        """Departments with ledger-derived agent counters"""
        ledger = self.store.load_ledger()
        return [
            department.model_copy(update={
                "agents": [with_counters(agent, ledger) for agent in department.agents]
            })
            for department in self.store.list_departments()
        ]

    def get_department(self, name: str) -> Department:
        for department in self.list_departments():
            if department.name == name:
                return department
        raise NotFoundError("Department", name)

    def all_agents(self) -> List[Agent]:
        return [agent for department in self.list_departments() for agent in department.agents]

    def find_agent(self, name: str, department_name: Optional[str] = None) -> Agent:
        """
        Look up an agent by name.

        Names are only unique within a department, so the first match wins
        when no department is given.
        """
        for department in self.list_departments():
            if department_name is not None and department.name != department_name:
                continue
            agent = department.find_agent(name)
            if agent is not None:
                return agent
        raise NotFoundError("Agent", name)

    def create_department(self, data: Dict[str, Any]) -> Department:
        form = parse_form(DepartmentForm, data)
        department = self.store.create_department(form.name)
        logger.info(f"Created department {department.name}")
        return department

    def delete_department(self, name: str):
        """Delete a department together with its agents"""
        self.store.delete_department(name)
        logger.info(f"Deleted department {name}")

    def add_agent(self, data: Dict[str, Any]) -> Agent:
        form = parse_form(AgentForm, data)
        department = self.get_department(form.department_name)
        if department.find_agent(form.name) is not None:
            raise ValidationError(
                f"Agent {form.name} already exists in {department.name}",
                {"name": "Agent already exists in this department"}
            )
        agent = self.store.save_agent(Agent(**form.model_dump()))
        logger.info(f"Added agent {agent.name} to {department.name}")
        return agent

    def update_agent(self, data: Dict[str, Any]) -> Agent:
        form = parse_form(AgentForm, data)
        self.find_agent(form.name, form.department_name)
        return self.store.save_agent(Agent(**form.model_dump()))

    def remove_agent(self, department_name: str, name: str):
        self.store.delete_agent(department_name, name)
        logger.info(f"Removed agent {name} from {department_name}")
