"""
Prompts
Templates used by the website analyst. Rendered with str.format.
"""

ANALYST_SYSTEM_PROMPT = """You are a business analyst who studies company websites to understand
the business, its customers and how those customers search. Reply with JSON only."""


ANALYZE_WEBSITE_PROMPT = """Analyze this website ({url}) and extract the business profile.

## Website content
{content}

Return a JSON object with these fields:
{{
  "businessName": "company or brand name",
  "businessType": "primary industry or category",
  "industryCategory": "broader industry",
  "businessModel": "how the business makes money",
  "companySize": "solo, small, mid-market or enterprise",
  "description": "two sentence business description",
  "targetAudience": "primary customer demographic",
  "decisionMakers": "who decides to buy",
  "endUsers": "who uses the product or service",
  "searchBehavior": "how customers search when they need this",
  "contentFocus": "main content themes",
  "brandVoice": "tone and personality",
  "websiteGoals": "what the website is trying to get visitors to do",
  "blogStrategy": "content that would attract these customers",
  "keywords": ["relevant", "keywords"],
  "customerScenarios": [{{"scenario": "...", "value": "high|medium|low"}}],
  "businessValueAssessment": {{"potential": "...", "reasoning": "..."}},
  "customerLanguagePatterns": ["phrases customers use"],
  "searchBehaviorInsights": ["..."],
  "seoOpportunities": ["..."],
  "contentStrategyRecommendations": ["..."],
  "competitiveIntelligence": {{"competitors": [], "differentiators": []}},
  "analysisConfidenceScore": 0.0
}}
"""


AUDIENCE_SCENARIOS_PROMPT = """Using this business analysis, propose up to {count} distinct customer audiences
that would search for and buy from this business.

## Business analysis
{analysis}

## Audiences the owner already has (do not repeat these)
{existing}

Return a JSON object:
{{
  "scenarios": [
    {{
      "targetSegment": {{"demographics": "...", "psychographics": "...", "searchBehavior": "..."}},
      "customerProblem": "the problem that makes them search",
      "customerLanguage": ["phrases they type into search"],
      "conversionPath": "how they move from search to purchase",
      "businessValue": {{"searchVolume": "...", "conversionPotential": "high|medium|low", "priority": 1}},
      "seoKeywords": ["..."],
      "contentIdeas": [{{"title": "...", "searchIntent": "..."}}]
    }}
  ]
}}
"""


PITCH_PROMPT = """Write a short conversion pitch for this audience of {business_name} ({business_type}).
The business targets: {target_audience}.

## Audience
{scenario}

Return a JSON object:
{{
  "pitch": "two or three sentences explaining why content for this audience pays off",
  "projected_revenue_low": 0,
  "projected_revenue_high": 0,
  "projected_profit_low": 0,
  "projected_profit_high": 0
}}
"""


AUDIENCE_IMAGE_PROMPT = """A clean, modern marketing illustration of {segment} facing this problem:
{problem}. Brand voice: {brand_voice}. No text in the image."""


NARRATIVE_PROMPT = """Write a short narrative analysis of this business for its owner, as if you had just
studied their website. Speak directly to them, in plain language, in two or three paragraphs.

## Business
{analysis}

## Intelligence
{intelligence}

## Calls to action found on the site
{ctas}

Return a JSON object:
{{
  "narrative": "the narrative text",
  "confidence": 0.0,
  "keyInsights": [
    {{"heading": "short title", "body": "one or two sentences", "category": "audience|seo|conversion|content"}}
  ]
}}
"""


SCRAPING_OBSERVATION_PROMPT = """In one friendly sentence (under 30 words), tell the site owner what you notice first
about their website. Title: {title}. Description: {description}. Headings: {headings}."""


CTA_OBSERVATION_PROMPT = """In one friendly sentence (under 30 words), comment on these calls to action found on the
site owner's homepage: {ctas}. If there are none, say that visitors may not know what to do next."""
