"""
LLM prompt templates for podcast generation.

All templates use Python .format() style placeholders like {variable_name}.
Variables are substituted at runtime in the analyzer and highlight services.
"""

# Title generation
TITLE_SYSTEM_PROMPT = (
    "You are an expert headline writer. Produce one concise, engaging title of at most "
    "30 characters. Reply with the title only, without quotes."
)

TITLE_TEMPLATE = """Write a concise title (at most 30 characters) in {language} for the following content:

{content}"""

# Summary generation
SUMMARY_SYSTEM_PROMPT = (
    "You are an expert content summarizer. Organize the user's text into a clear, "
    "structured summary."
)

SUMMARY_TEMPLATE = """Write a detailed summary in {language} of the following content, covering the main points and key information:

{content}"""

# Two-host script generation
SCRIPT_SYSTEM_PROMPT = (
    "You are a professional podcast script writer. Turn content into a script for a "
    "conversation between two hosts."
)

STYLE_GUIDANCE = {
    "educational": "Explain concepts step by step, define terms and use concrete examples.",
    "casual": "Keep the tone natural and relaxed, like two friends chatting.",
    "professional": "Keep the tone polished and precise, like a business briefing.",
}

SCRIPT_TEMPLATE = """Using the content below, write a lively two-host podcast script in {language}. The script must:
1. Be a dialogue between Host A and Host B
2. Follow this tone: {style_guidance}
3. Include an opening and a closing
4. Include natural interaction and discussion between the hosts
5. Separate each host's turn with a blank line

Content:
{content}

Summary:
{summary}"""

# Transcript analysis for the video path: one call, JSON reply
TRANSCRIPT_ANALYSIS_SYSTEM_PROMPT = """You are a professional podcast editor. Turn a transcript into podcast content written in {language}.
**Important**: reply with raw JSON only. Do not wrap it in markdown code fences.
Output format:
{{"summary": "200-300 word summary", "podcastScript": "script with intro, main content and outro"}}"""

TRANSCRIPT_ANALYSIS_TEMPLATE = """Analyze the following transcript and reply with JSON in {language}:
{transcript}"""

# Direct video analysis (fast path)
VIDEO_ANALYSIS_SYSTEM_PROMPT = """You are a professional podcast editor. You must analyze the specified video and produce podcast content in {language}.
**Key requirements**:
1. Analyze the specified video only, never a different one
2. Include the exact videoId in your reply
3. Return the video's actual title and content
4. Reply with raw JSON only, without markdown code fences

Output format:
{{
  "videoId": "{video_id}",
  "title": "the video's actual title",
  "transcription": "text summary of the main content (500-1000 words)",
  "summary": "200-300 word summary",
  "podcastScript": "podcast script with intro, main content and outro"
}}"""

VIDEO_ANALYSIS_TEMPLATE = """Analyze this specific video and produce podcast content in {language}.

**Video URL**: {url}
**Video ID**: {video_id}
**Actual title**: {actual_title}
**Duration**: {duration} seconds

**Strict requirements**:
1. The videoId in your reply must be exactly "{video_id}"
2. The title in your reply must be exactly "{actual_title}"
3. If you cannot access this video or the title does not match, say so instead of returning another video's content

Reply with JSON only."""

# Highlight selection
HIGHLIGHT_SYSTEM_PROMPT = (
    "You are a professional podcast editor who is skilled at spotting highlights. "
    "Reply with raw JSON only, without markdown code fences. Write every text field in {language}."
)

HIGHLIGHT_TEMPLATE = """Find the single most compelling segment of the podcast transcript below. It must last about {target_duration} seconds (within 3 seconds).

A good highlight is one of:
1. A climax: the most heated or interesting part of the discussion
2. A memorable line: an insightful or inspiring point
3. A clear summary of a core concept
4. A story or example the audience can relate to

Podcast transcript:
{transcript}

Reply with JSON in exactly this shape:
{{
  "segments": [
    {{
      "title": "short, catchy title (10-20 words)",
      "description": "why this segment is compelling (30-50 words)",
      "startIndex": <integer index of the first turn, the number in [brackets]>,
      "endIndex": <integer index of the last turn>,
      "reason": "why you chose it"
    }}
  ]
}}

Constraints:
- Return exactly 1 segment
- A highlight never exceeds {max_duration} seconds
- Do not cut a turn in the middle of a sentence

Duration estimate:
- Assume each character takes about {seconds_per_char} seconds to speak
- {target_duration} seconds needs about {target_chars} characters
- If one turn is too short, span several consecutive turns (widen endIndex - startIndex)"""
