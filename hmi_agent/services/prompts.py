# hmi_agent/services/prompts.py
#
# Prompt templates are plain data: named {SLOT} placeholders filled by render_prompt.

from typing import Dict

PROMPT_VERSION = "2024.10"


SCREEN_IDENTIFICATION_PROMPT = """
You are an expert HMI design assistant. I have provided you with a Functional Design Specification (FDS) document in structured format. Please analyze it and identify all the HMI screens that need to be designed.

Look for:
1. Explicitly named screens (e.g. "Home Screen", "Manual Control Screen")
2. Operating modes that need their own screen (Manual, Auto, Test, Purging, Pumpback)
3. Configuration and settings pages
4. Alarm, event and fault displays
5. User management and access control pages
6. Monitoring, trending and tracking displays

STRUCTURED FDS CONTENT:
{SECTIONS_JSON}

Respond in this exact JSON format:
{
  "totalScreens": <number>,
  "screenList": [
    {
      "screenId": "screen_1",
      "screenName": "Home Screen",
      "screenPurpose": "One sentence describing what the operator does here",
      "screenType": "navigation | control | monitoring | configuration | alarm"
    }
  ],
  "reasoning": "Short explanation of how the screens were identified"
}

RESPOND ONLY WITH VALID JSON:
"""


WORKFLOW_SYSTEM_PROMPT = (
    "You are an expert HMI/PLC engineer with 25+ years of experience designing operator "
    "interfaces for industrial control systems. You follow ISA-101 and IEC 62682 practice. "
    "Output only valid JSON."
)

WORKFLOW_PROMPT = """
Expert HMI Analysis by 25+ year PLC/HMI professional for {SYSTEM_TYPE}:

SCREENS: {SCREEN_NAMES}
COMPONENTS: {COMPONENTS}
OPERATIONS: {OPERATIONS}
TOTAL SCREENS: {TOTAL_SCREENS}

Produce one JSON object with:
{
  "systemOverview": {
    "systemName": "...",
    "systemType": "{SYSTEM_TYPE}",
    "totalScreens": {TOTAL_SCREENS},
    "primaryFunction": "...",
    "expertReview": "..."
  },
  "screenAnalysis": [
    {
      "screenName": "exact screen name from SCREENS",
      "screenNumber": 1,
      "purpose": "...",
      "keyElements": ["Element: position - function"],
      "functionality": ["..."],
      "navigation": {"from": ["..."], "to": ["..."], "triggers": ["..."]},
      "behavior": "...",
      "dataVisualization": "...",
      "userRoles": "...",
      "designRationale": "..."
    }
  ],
  "navigationFlow": {
    "mermaidDiagram": "graph TD ...",
    "screenTransitions": [
      {"from": "Screen A", "to": "Screen B", "trigger": "...", "description": "..."}
    ]
  },
  "technicalSpecifications": {"hmiPlatform": "...", "communicationProtocol": "...", "updateRate": "..."},
  "implementationNotes": ["..."]
}

Use only the screen names listed in SCREENS. Return JSON only.
"""


SCREEN_SPEC_SYSTEM_PROMPT = """You are an expert Industrial HMI Designer with 20+ years of experience building operator screens for PLC-based control systems.

RESPONSE REQUIREMENTS:
- Respond with ONE valid JSON object only
- No markdown, no commentary
- Every element must have type, label, position {x, y, width, height} and style
- All positions must fit inside an 800x600 canvas"""

SCREEN_SPEC_PROMPT = """
Design the HMI screen: {SCREEN_NAME}
Purpose: {SCREEN_PURPOSE}

ACTUAL DOCUMENT CONTENT FOR THIS SCREEN:
{SCREEN_CONTENT}

Equipment mentioned: {EQUIPMENT}
Operations mentioned: {OPERATIONS}
Parameters mentioned: {PARAMETERS}

DOCUMENT CONTEXT:
- Document sample: {DOCUMENT_SAMPLE}
- System type: {SYSTEM_TYPE}
- System description: {SYSTEM_DESCRIPTION}
- Components: {COMPONENTS}
- Other screens: {OTHER_SCREENS}

SCREEN-SPECIFIC REQUIREMENTS:
{SCREEN_REQUIREMENTS}

FIXED LAYOUT SECTIONS:
- HEADER (0-80px): screen title on the left, battery status and date/time on the right
- FOOTER (540-600px): navigation buttons to the other screens

MANDATORY POSITIONING RULES:
- Header elements: y between 10 and 70
- Footer elements: y between 540 and 590
- Main elements: between the header and the footer, x + width <= 800

UNIQUENESS REQUIREMENTS:
- Use the equipment, operations and parameters of THIS document
- Do not copy generic layouts from other screens

HMI ELEMENT TYPES:
- control_button: start/stop/mode commands; raised button with label
- status_indicator: equipment state; colored lamp with label
- data_table: lists of components, alarms or values; header row plus rows
- data_display: live process value; dark panel with value and unit
- value_input: setpoints and limits; white entry box
- alarm_indicator: active alarm summary; red bordered box
- gauge: analog reading; circular dial with needle
- progress_bar: sequence or level progress; horizontal bar
- text: section titles and instructions
- toggle: two-state selector; ON/OFF switch
- navigation_button: jump to another screen; footer button
- date_time_display: current date and time; header text
- battery_indicator: battery or UPS charge; header badge
- header_title: screen title in the header band
- trend_chart: historical values; use data_table if unsure
- keypad: numeric entry; use value_input if unsure

CANVAS SPEC: 800x600 pixels, header 80px, footer 60px.

OUTPUT FORMAT (JSON):
{
  "screenTitle": "{SCREEN_NAME}",
  "layout": {
    "header": {"title": "{SCREEN_NAME}", "height": 80, "backgroundColor": "#2C3E50", "titleColor": "#ECF0F1", "elements": []},
    "mainArea": {"backgroundColor": "#34495E", "type": "{SCREEN_TYPE}"},
    "footer": {"height": 60, "backgroundColor": "#2C3E50", "elements": []}
  },
  "colorScheme": {
    "background": "#34495E", "primary": "#3498DB", "secondary": "#F39C12", "accent": "#E74C3C",
    "success": "#27AE60", "text": "#ECF0F1", "header": "#2C3E50"
  },
  "elements": [
    {
      "type": "control_button",
      "label": "START",
      "position": {"x": 50, "y": 180, "width": 140, "height": 50},
      "style": {"backgroundColor": "#27AE60", "color": "#FFFFFF"},
      "purpose": "...",
      "userAction": "..."
    }
  ],
  "functionalDescription": "...",
  "recommendations": ["..."]
}

Return 8-12 realistic UI components per screen.
"""


PROMPT_TEMPLATES: Dict[str, str] = {
    "screen_identification": SCREEN_IDENTIFICATION_PROMPT,
    "workflow_system": WORKFLOW_SYSTEM_PROMPT,
    "workflow": WORKFLOW_PROMPT,
    "screen_spec_system": SCREEN_SPEC_SYSTEM_PROMPT,
    "screen_spec": SCREEN_SPEC_PROMPT,
}


def render_prompt(template: str, **slots: object) -> str:
    """Fill {SLOT} placeholders. JSON braces in the template are left alone."""
    prompt = template
    for name, value in slots.items():
        prompt = prompt.replace("{" + name + "}", str(value))
    return prompt
