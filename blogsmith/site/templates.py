"""
Jinja2 page templates for the generated site.
"""

from datetime import datetime

from jinja2 import DictLoader, Environment, StrictUndefined, select_autoescape

from blogsmith.config import Settings
from blogsmith.content.preprocessor import TextPreprocessor

BASE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>{% block title %}{{ site.title }}{% endblock %}</title>
  {%- if site.description %}
  <meta name="description" content="{{ site.description }}">
  {%- endif %}
  <link rel="alternate" type="application/atom+xml" title="{{ site.title }}" href="{{ url('feed.xml') }}">
  {%- block head %}{% endblock %}
</head>
<body>
  <header class="site-header">
    <a class="site-title" href="{{ url('') }}">{{ site.title }}</a>
    <nav>
      <a href="{{ url('categories/') }}">Categories</a>
      <a href="{{ url('tags/') }}">Tags</a>
      <a href="{{ url('archives/') }}">Archives</a>
    </nav>
  </header>
  <main>
{% block content %}{% endblock %}
  </main>
  <footer class="site-footer">
    {%- if site.author %}&copy; {{ site.author }}{% endif %}
  </footer>
</body>
</html>
"""

POST_LIST_MACRO = """{% macro post_list(posts) -%}
<ul class="post-list">
{%- for post in posts %}
  <li>
    <a href="{{ post.url }}">{{ post.document.title }}</a>
    <time datetime="{{ post.document.published_at.isoformat() }}">{{ post.document.published_at | date }}</time>
    {%- if post.excerpt %}
    <p class="excerpt">{{ post.excerpt }}</p>
    {%- endif %}
  </li>
{%- endfor %}
</ul>
{%- endmacro %}
"""

POST_TEMPLATE = """{% extends "base.html" %}
{% block title %}{{ post.document.title }} | {{ site.title }}{% endblock %}
{% block head %}
  {%- if post.excerpt %}
  <meta name="description" content="{{ post.excerpt }}">
  {%- endif %}
  {%- if "math" in flags %}
  <script id="MathJax-script" async src="{{ site.math_script_url }}"></script>
  {%- endif %}
  {%- if "mermaid" in flags %}
  <script src="{{ site.mermaid_script_url }}"></script>
  <script>mermaid.initialize({ startOnLoad: true });</script>
  {%- endif %}
{% endblock %}
{% block content %}
<article class="post">
  <h1>{{ post.document.title }}</h1>
  <p class="post-meta">
    <time datetime="{{ post.document.published_at.isoformat() }}">{{ post.document.published_at | date }}</time>
    {%- if author %} by {{ author }}{% endif %}
    &middot; {{ post.reading_minutes }} min read
  </p>
  {%- if post.document.categories %}
  <p class="post-categories">
    {%- for name in post.document.categories %}
    <a href="{{ url('categories/' ~ (name | slug) ~ '/') }}">{{ name }}</a>
    {%- endfor %}
  </p>
  {%- endif %}
  {%- if show_toc and post.toc %}
  <nav class="toc">
    <ul>
    {%- for entry in post.toc %}
      <li class="toc-level-{{ entry.level }}"><a href="#{{ entry.anchor }}">{{ entry.title }}</a></li>
    {%- endfor %}
    </ul>
  </nav>
  {%- endif %}
  <div class="post-content">
{{ post.html | safe }}
  </div>
  {%- if post.document.tags %}
  <p class="post-tags">
    {%- for name in post.document.tags %}
    <a href="{{ url('tags/' ~ (name | slug) ~ '/') }}">#{{ name }}</a>
    {%- endfor %}
  </p>
  {%- endif %}
</article>
{% endblock %}
"""

LISTING_TEMPLATE = """{% extends "base.html" %}
{% from "macros.html" import post_list %}
{% block title %}{{ heading }} | {{ site.title }}{% endblock %}
{% block content %}
{%- if pinned %}
<section class="pinned">
  <h2>Pinned</h2>
  {{ post_list(pinned) }}
</section>
{%- endif %}
<h1>{{ heading }}</h1>
{{ post_list(posts) }}
{% endblock %}
"""

TERMS_TEMPLATE = """{% extends "base.html" %}
{% block title %}{{ heading }} | {{ site.title }}{% endblock %}
{% block content %}
<h1>{{ heading }}</h1>
<ul class="term-list">
{%- for group in groups %}
  <li><a href="{{ url(prefix ~ '/' ~ group.slug ~ '/') }}">{{ group.name }}</a> <span class="count">{{ group.count }}</span></li>
{%- endfor %}
</ul>
{% endblock %}
"""

ARCHIVES_TEMPLATE = """{% extends "base.html" %}
{% from "macros.html" import post_list %}
{% block title %}Archives | {{ site.title }}{% endblock %}
{% block content %}
<h1>Archives</h1>
{%- for year, posts in years.items() %}
<section class="archive-year">
  <h2>{{ year }}</h2>
  {{ post_list(posts) }}
</section>
{%- endfor %}
{% endblock %}
"""

FEED_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>{{ site.title }}</title>
  {%- if site.description %}
  <subtitle>{{ site.description }}</subtitle>
  {%- endif %}
  <link href="{{ absolute_url('feed.xml') }}" rel="self"/>
  <link href="{{ absolute_url('') }}"/>
  <id>{{ absolute_url('') }}</id>
  <updated>{{ updated }}</updated>
  {%- if site.author %}
  <author><name>{{ site.author }}</name></author>
  {%- endif %}
{%- for post in posts %}
  <entry>
    <title>{{ post.document.title }}</title>
    <link href="{{ absolute_url(post.url) }}"/>
    <id>{{ absolute_url(post.url) }}</id>
    <published>{{ post.document.published_at.isoformat() }}</published>
    <updated>{{ post.document.published_at.isoformat() }}</updated>
    {%- if post.document.author %}
    <author><name>{{ post.document.author }}</name></author>
    {%- endif %}
    {%- for name in post.document.categories + post.document.tags %}
    <category term="{{ name }}"/>
    {%- endfor %}
    <summary>{{ post.excerpt }}</summary>
    <content type="html">{{ post.html | forceescape }}</content>
  </entry>
{%- endfor %}
</feed>
"""

TEMPLATES = {
    "base.html": BASE_TEMPLATE,
    "macros.html": POST_LIST_MACRO,
    "post.html": POST_TEMPLATE,
    "listing.html": LISTING_TEMPLATE,
    "terms.html": TERMS_TEMPLATE,
    "archives.html": ARCHIVES_TEMPLATE,
    "feed.xml": FEED_TEMPLATE,
}


def format_date(value: datetime) -> str:
    return value.strftime("%b %d, %Y")


def create_environment(settings: Settings) -> Environment:
    """Create the Jinja2 environment with site-wide globals and filters."""
    env = Environment(
        loader=DictLoader(TEMPLATES),
        autoescape=select_autoescape(["html", "xml"]),
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )
    env.filters["date"] = format_date
    env.filters["slug"] = lambda text: TextPreprocessor.slugify(text, default="term")
    env.globals["url"] = settings.url_for
    env.globals["absolute_url"] = lambda path: settings.site_url.rstrip("/") + (
        path if path.startswith("/") else settings.url_for(path)
    )
    env.globals["site"] = {
        "title": settings.site_title,
        "description": settings.site_description,
        "author": settings.site_author,
        "url": settings.site_url,
        "math_script_url": settings.math_script_url,
        "mermaid_script_url": settings.mermaid_script_url,
    }
    return env
