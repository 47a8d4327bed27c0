import os

extensions = [
    'sphinx.ext.autodoc', 'sphinx.ext.intersphinx', 'sphinx.ext.todo',
    'sphinx.ext.viewcode', 'sphinx.ext.napoleon'
]

templates_path = ['_templates']
source_suffix = '.rst'
master_doc = 'index'
project = u'pymemtext'
copyright = u'2015, Pinterest.com'

# The short X.Y version.
version = '1.0'

# The full version, including alpha/beta/rc tags.
release = '1.0.0'

exclude_patterns = []

pygments_style = 'sphinx'
# on_rtd is whether we are on readthedocs.org
on_rtd = os.environ.get('READTHEDOCS', None) == 'True'

if not on_rtd:  # only import and set the theme if we're building docs locally
    import sphinx_rtd_theme
    html_theme = 'sphinx_rtd_theme'

html_static_path = ['_static']
htmlhelp_basename = 'pymemtextdoc'

intersphinx_mapping = {'python': ('https://docs.python.org/3', None)}
