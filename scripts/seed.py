#!/usr/bin/env python3
"""
Seed script: creates the demo behaviors and one transcribed demo call.
Run after migrations: python scripts/seed.py
"""

import asyncio
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cqas.database import async_session_maker, engine
from cqas.storage.repositories import create_behavior, create_call, list_behaviors

BEHAVIORS = [
    {
        "name": "Greeting and introduction",
        "description": "The agent opens the call properly.",
        "prompt": (
            "The agent must greet the customer, state their own name and the company name "
            "within the first minute of the call."
        ),
    },
    {
        "name": "Discovery questions",
        "description": "The agent explores the customer's needs before offering anything.",
        "prompt": (
            "The agent must ask at least 3 of 5 discovery questions: current provider, "
            "monthly spend, number of lines, main pain point, decision timeline."
        ),
    },
    {
        "name": "Active listening",
        "description": "The agent confirms understanding of what the customer said.",
        "prompt": "The agent paraphrases or confirms the customer's need at least once.",
    },
    {
        "name": "Call closing",
        "description": "The agent wraps up the call with next steps.",
        "prompt": (
            "The agent must summarize the agreement, confirm next steps and thank the "
            "customer before ending the call."
        ),
    },
]

DEMO_TRANSCRIPT = [
    {"speaker": "Agent", "text": "Good morning, this is Laura from Acme Telecom. How can I help?", "start": 0.0, "end": 4.2},
    {"speaker": "Customer", "text": "Hi, I'm thinking about switching my mobile plan.", "start": 4.5, "end": 7.9},
    {"speaker": "Agent", "text": "Sure. Who is your current provider?", "start": 8.1, "end": 10.0},
    {"speaker": "Customer", "text": "Globex, but it's getting expensive.", "start": 10.3, "end": 12.6},
    {"speaker": "Agent", "text": "We have an unlimited plan at 25 a month. Shall I sign you up?", "start": 12.9, "end": 17.4},
    {"speaker": "Customer", "text": "Let me think about it.", "start": 17.7, "end": 19.0},
    {"speaker": "Agent", "text": "Okay, bye.", "start": 19.2, "end": 20.0},
]


async def seed():
    async with async_session_maker() as session:
        existing = {b.name for b in await list_behaviors(session)}
        for behavior in BEHAVIORS:
            if behavior["name"] in existing:
                print(f"Behavior already exists: {behavior['name']}")
                continue
            await create_behavior(session, **behavior)
            print(f"Created behavior: {behavior['name']}")

        call = await create_call(session, title="Demo call - plan switch", transcription=DEMO_TRANSCRIPT)
        await session.commit()

    await engine.dispose()
    print()
    print(f"Demo call ID: {call.call_id}")
    print(f"Analyze with: curl -X POST http://localhost:8000/v1/calls/{call.call_id}/analysis")


if __name__ == "__main__":
    asyncio.run(seed())
