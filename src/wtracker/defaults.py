"""Default prompts and schema presets."""

from __future__ import annotations

from typing import Any

EXTENSION_KEY = "WTracker"
SNAPSHOT_VALUE_KEY = "value"
SNAPSHOT_TEMPLATE_KEY = "html"
NATIVE_SCHEMA_NAME = "SceneTracker"

DEFAULT_PROMPT = """You are a scene tracker for an ongoing roleplay. Read the conversation so far and \
describe the current state of the scene.

Update time, location, weather and the characters present based on what happened in the latest message. \
Keep details from the previous tracker state unless the story changed them. Your entire response MUST be \
a single structured object that follows the provided schema."""

DEFAULT_PROMPT_JSON = """You are a scene tracker for an ongoing roleplay. Your SOLE purpose is to generate a \
single, valid JSON object that strictly adheres to the provided JSON schema.

**CRITICAL INSTRUCTIONS:**
1.  You MUST wrap the entire JSON object in a markdown code block (```json\\n...\\n```).
2.  Your response MUST NOT contain any explanatory text, comments, or any other content outside of this \
single code block.
3.  The JSON object inside the code block MUST be valid and conform to the schema.

**RESPONSE JSON SCHEMA TO FOLLOW:**
```json
{{schema}}
```

**EXAMPLE OF A PERFECT RESPONSE:**
```json
{{example_response}}
```
"""

DEFAULT_PROMPT_XML = """You are a scene tracker for an ongoing roleplay. Your SOLE purpose is to generate a \
single, valid XML structure that strictly adheres to the provided example.

**CRITICAL INSTRUCTIONS:**
1.  You MUST wrap the entire XML object in a markdown code block (```xml\\n...\\n```).
2.  Your response MUST NOT contain any explanatory text, comments, or any other content outside of this \
single code block.
3.  The XML object inside the code block MUST be valid.

**RESPONSE JSON SCHEMA (for context):**
```json
{{schema}}
```

**EXAMPLE OF A PERFECT RESPONSE (XML):**
```xml
<root>
{{example_response}}
</root>
```
"""

DEFAULT_SCHEMA_VALUE: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "SceneTracker",
    "description": "Schema for tracking roleplay scene details",
    "type": "object",
    "properties": {
        "time": {"type": "string", "description": "Format: HH:MM:SS; MM/DD/YYYY (Day Name)"},
        "location": {"type": "string", "description": "Specific scene location"},
        "weather": {"type": "string", "description": "Current weather conditions"},
        "characters": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string", "description": "Character name"},
                    "outfit": {"type": "string", "description": "Complete outfit"},
                    "stateOfDress": {
                        "type": "string",
                        "description": "How put-together/disheveled character appears",
                    },
                },
                "required": ["name", "outfit", "stateOfDress"],
            },
            "description": "Array of character objects",
        },
    },
    "required": ["time", "location", "weather", "characters"],
}

DEFAULT_SCHEMA_HTML = """<div class="wtracker_default_mes_template">
    <h4>World State</h4>
    <table>
        <tbody>
            <tr><td>Time:</td><td>{{data.time}}</td></tr>
            <tr><td>Location:</td><td>{{data.location}}</td></tr>
            <tr><td>Weather:</td><td>{{data.weather}}</td></tr>
        </tbody>
    </table>
</div>
<hr>"""
