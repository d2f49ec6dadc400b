"""
Example: Reputation Tracking

Demonstrates approved feedback, revocation, responses and paged reads.
"""

from dotenv import load_dotenv

load_dotenv()

from agentregistry import (  # noqa: E402
    PAGE_SIZE,
    WAD,
    AgentRegistries,
)


def main():
    """
    Reputation example showing:
    1. Agent registration and client approval
    2. Quota enforcement on the approved path
    3. Revocation and its effect on the summary
    4. Paging through feedback with a cursor
    """
    print("=== agentregistry Reputation Example ===\n")

    registries = AgentRegistries.from_env()
    identity, reputation = registries.identity, registries.reputation

    owner = "agent_owner"
    client = "client_wallet"

    # ========================================
    # Register and approve
    # ========================================
    print("--- Registration ---")

    agent_id = identity.register_with_uri(owner, "https://agent.example.com/registration.json")
    print(f"  Registered agent {agent_id} for {owner}")

    reputation.approve_client(owner, agent_id, client, 2)
    print(f"  Approved {client} for 2 feedback entries")

    # ========================================
    # Give feedback (quota is enforced)
    # ========================================
    print("\n--- Feedback ---")

    for value in (80, 100, 60):
        result = registries.execute(
            reputation.give_feedback_approved, client, agent_id, value, 0, "quality"
        )
        if result.ok:
            print(f"  Feedback {value}: recorded as index {result.value}")
        else:
            print(f"  Feedback {value}: rejected with code {result.error}")

    summary = reputation.get_summary(agent_id)
    print(f"  Summary: {summary.count} entries, mean {summary.summary_value / WAD}")

    # ========================================
    # Revoke and respond
    # ========================================
    print("\n--- Revocation ---")

    reputation.revoke_feedback(client, agent_id, 1)
    summary = reputation.get_summary(agent_id)
    print(f"  After revoking index 1: {summary.count} entries, mean {summary.summary_value / WAD}")

    reputation.append_response(owner, agent_id, client, 2, "ipfs://response-to-feedback-2")
    print(f"  Responses to index 2: {reputation.get_response_count(agent_id, client, 2)}")

    # ========================================
    # Paged reads
    # ========================================
    print("\n--- Paging ---")

    for i in range(2 * PAGE_SIZE):
        reputation.give_feedback(f"reviewer_{i}", agent_id, 50 + i, 0, "uptime")

    cursor = None
    page_number = 0
    while True:
        page = reputation.read_all_feedback(agent_id, tag1="uptime", cursor=cursor)
        page_number += 1
        print(
            f"  Page {page_number}: {len(page)} entries, "
            f"{registries.chain.last_call.reads} reads, next cursor {page.cursor}"
        )
        cursor = page.cursor
        if cursor is None:
            break

    print("\n=== Reputation Example Complete ===")


if __name__ == "__main__":
    main()
