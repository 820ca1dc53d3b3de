import random
from typing import Dict, Hashable, List, Optional, Sequence


class IdentityPool:
    """Rotating user-agents and proxies with sticky proxy assignment.

    A session id gets one proxy for the whole run, so every request from one
    worker looks like the same client to the target. User-agents are drawn
    per browser build and carry no state. The pool is passed explicitly to
    each BrowserSession; there is no process-wide assignment table.
    """

    def __init__(
        self,
        user_agents: Sequence[str] = (),
        proxies: Sequence[str] = (),
        rng: Optional[random.Random] = None,
    ):
        self.user_agents: List[str] = [ua for ua in user_agents if ua and ua.strip()]
        self.proxies: List[str] = [p.strip() for p in proxies if p and p.strip()]
        self._rng = rng or random.Random()
        self._assignments: Dict[Hashable, str] = {}

    def select_user_agent(self) -> Optional[str]:
        if not self.user_agents:
            return None
        return self._rng.choice(self.user_agents)

    def select_proxy(self, session_id: Optional[Hashable] = None) -> Optional[str]:
        if not self.proxies:
            return None
        if session_id is None:
            return self._rng.choice(self.proxies)
        if session_id not in self._assignments:
            self._assignments[session_id] = self._rng.choice(self.proxies)
        return self._assignments[session_id]
