"""
Example: Resolving an Agent Registration

Registers an agent whose URI is a base64 data URI and resolves it back into
an AgentRegistration, then checks the advertised services.
"""

import asyncio
import base64
import json

from dotenv import load_dotenv

load_dotenv()

from agentregistry import AgentRegistries  # noqa: E402
from agentregistry.identity.types import REGISTRATION_TYPE  # noqa: E402

REGISTRATION = {
    "type": REGISTRATION_TYPE,
    "name": "Forecast Agent",
    "description": "Answers weather questions over A2A",
    "services": [{"name": "A2A", "endpoint": "https://forecast.example.com/a2a"}],
    "supportedTrust": ["reputation", "validation"],
}


async def main():
    print("=== agentregistry Resolver Example ===\n")

    registries = AgentRegistries.from_env()
    encoded = base64.b64encode(json.dumps(REGISTRATION).encode()).decode()
    agent_id = registries.identity.register_with_uri(
        "agent_owner", f"data:application/json;base64,{encoded}"
    )

    async with registries.resolver() as resolver:
        registration = await resolver.resolve(agent_id)

    print(f"  Agent {registration.agent_id}: {registration.name}")
    print(f"  Owner: {registration.owner}, wallet: {registration.wallet}")
    print(f"  Speaks A2A: {registration.has_service('A2A')}")
    print(f"  Trust models: {', '.join(registration.supported_trust)}")

    print("\n=== Resolver Example Complete ===")


if __name__ == "__main__":
    asyncio.run(main())
