"""Prompt text for the world-generation agents.

Each phase prompt ends with a JSON shape the model must return; the
orchestrator rejects responses missing the phase's top-level array.
"""

WORLD_BUILDER_SYSTEM = """You are a meticulous fantasy world-builder.
Every faction, character, place, conflict and secret you invent must
grow out of the world's core tensions and reference the names already
established.  Reuse names exactly as given.  Respond with a single JSON
object and nothing else."""


TENSIONS_TASK = """Read the campaign description above and distil the world it implies.

Identify 3-5 CORE TENSIONS: the fundamental axes of conflict that drive
this world.  Each tension needs at least two opposing sides, each with a
one-sentence stance, and 2-3 concrete manifestations (how the tension
shows up in daily life).

Also choose a tone, a scale and up to five themes.

Return JSON:
{
  "world_name": "Evocative name for the world",
  "tone": "dark | heroic | intrigue | comedic | epic | gritty",
  "scale": "local | regional | continental | planar",
  "themes": ["theme", "..."],
  "world_sketch": "Two paragraphs describing the world at a glance",
  "core_tensions": [
    {
      "name": "Short memorable name",
      "description": "What is at stake",
      "sides": [
        {"name": "Side A", "stance": "What they believe"},
        {"name": "Side B", "stance": "What they believe"}
      ],
      "manifestations": ["Concrete example", "..."]
    }
  ]
}"""


COSMOLOGY_TASK = """Describe the cosmology of this world: its gods or
great powers, how magic works, the other planes (if any) and the broad
eras of its history.  Deities should take sides in the core tensions.

Return JSON:
{
  "deities": [
    {
      "name": "Deity name",
      "tier": "major | supporting | minor",
      "domain": "What they govern",
      "disposition": "benevolent | malevolent | indifferent | capricious",
      "description": "Who they are and what they want",
      "symbol": "Holy symbol"
    }
  ],
  "magic_system": {"name": "...", "source": "...", "cost": "...", "limits": "..."},
  "planes": [{"name": "...", "description": "..."}],
  "history": [{"era": "Era name", "summary": "What happened"}]
}"""


FACTIONS_TASK = """Generate 5-8 factions for this world.  Every faction must
take a stance on at least one core tension, using the tension's exact
name.  Allies, enemies and patron deities must name other factions or
deities exactly.

Return JSON:
{
  "factions": [
    {
      "name": "Faction name",
      "tier": "major | supporting | minor",
      "type": "guild | church | noble_house | cult | military | merchant | criminal | other",
      "public_image": "How outsiders see them",
      "secret_nature": "What they really are (hidden from players)",
      "philosophy": "Core beliefs",
      "goals": ["..."],
      "methods": ["..."],
      "resources": ["..."],
      "symbol": "Emblem",
      "motto": "Motto",
      "influence": 1-10,
      "headquarters": "Seat of power",
      "tension_stances": [{"tension": "Exact core tension name", "stance": "Their position"}],
      "allies": ["Other faction name"],
      "enemies": ["Other faction name"],
      "patron_deity": "Deity name or null"
    }
  ]
}"""


NPCS_TASK = """Generate 10-15 notable NPCs.  Most should belong to one of the
factions above (use the exact faction name); each should play a role in
at least one core tension.  Weave in hooks for the player characters'
backstories where they fit.

Relationships may point at other NPCs, factions, locations or deities.
Mark a relationship "public": false when nobody else knows about it.

Return JSON:
{
  "npcs": [
    {
      "name": "Full name",
      "tier": "major | supporting | minor",
      "role": "ally | antagonist | mentor | rival | merchant | informant | neutral",
      "occupation": "...",
      "race": "...",
      "faction": "Exact faction name or null",
      "appearance": "...",
      "personality": ["trait", "..."],
      "speaking_style": "...",
      "public_goal": "What they claim to want",
      "private_goal": "What they actually want",
      "secret_goal": "What nobody must learn",
      "hidden_identity": "Secret identity or null",
      "tension_roles": [{"tension": "Exact core tension name", "role": "Their part in it"}],
      "location": "Where they are usually found",
      "relationships": [
        {"target": "Name", "target_type": "npc | faction | location | deity",
         "type": "ally | enemy | rival | servant | patron | family | trade_partner | neutral",
         "strength": 1-10, "description": "...", "public": true}
      ]
    }
  ]
}"""


CONFLICTS_TASK = """Generate 4-6 active conflicts.  Each conflict must grow out of
exactly one core tension (use its exact name as "root_tension") and
involve at least two named factions or NPCs from above.

Return JSON:
{
  "conflicts": [
    {
      "name": "Conflict name",
      "tier": "major | supporting | minor",
      "type": "war | political | religious | economic | personal | supernatural",
      "description": "...",
      "root_tension": "Exact core tension name",
      "participants": [{"type": "faction | npc", "name": "Exact name", "role": "aggressor | defender | instigator | mediator | victim"}],
      "stakes": "...",
      "public_narrative": "What most people believe",
      "true_nature": "What is really going on",
      "current_state": "brewing | escalating | open | stalemate | resolving",
      "possible_outcomes": ["..."]
    }
  ]
}"""


LOCATIONS_TASK = """Generate 10-15 locations.  Where a faction controls a place,
name it exactly in "controlling_faction".

Return JSON:
{
  "locations": [
    {
      "name": "Location name",
      "tier": "major | supporting | minor",
      "type": "city | town | village | fortress | ruin | wilderness | dungeon | temple | landmark",
      "description": "...",
      "atmosphere": "...",
      "sensory_details": ["sight", "sound", "smell"],
      "region": "...",
      "terrain": "...",
      "climate": "...",
      "population": "...",
      "controlling_faction": "Exact faction name or null",
      "connected_to": ["Other location name"],
      "hidden_secrets": ["..."]
    }
  ]
}"""


SECRETS_TASK = """Generate 8-12 secrets and plot hooks that tie the world
together.  Each secret should be known by at least one named NPC or
faction and relate to factions or locations above.

Return JSON:
{
  "secrets": [
    {
      "name": "Short title",
      "tier": "major | supporting | minor",
      "type": "identity | conspiracy | artifact | prophecy | history | location",
      "content": "The secret itself",
      "hints": ["Clue players might find"],
      "known_by": ["NPC or faction name"],
      "related_factions": ["Faction name"],
      "related_locations": ["Location name"],
      "discovery_conditions": "How players could uncover it",
      "reveal_impact": "What changes when it comes out"
    }
  ]
}"""


COHERENCE_SYSTEM = """You are a continuity editor for a generated fantasy world.
You audit structure, not prose quality.  Respond with a single JSON object."""


COHERENCE_TASK = """Audit the world summary above for coherence problems:

- contradiction: two facts that cannot both be true
- missing_link: entities that obviously should be connected but are not
- dead_end: an entity nothing else depends on or leads to
- orphan: an entity disconnected from every core tension

Rate overall coherence from 0 to 100.

Return JSON:
{
  "score": 0-100,
  "issues": [
    {"type": "contradiction | missing_link | dead_end | orphan",
     "severity": "critical | major | minor",
     "description": "...",
     "entities": ["Name", "..."]}
  ]
}"""
