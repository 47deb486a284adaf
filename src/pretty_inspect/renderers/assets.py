"""Stylesheet template and companion script embedded in HTML output.

The stylesheet uses ``--pd-*`` custom properties. Palette values are filled
in by placeholder substitution (``__BACKGROUND__``, ``__ARRAY__``, ...) once
per theme; ``__THEMES__`` and ``__INDENT__`` are replaced by the renderer.

The script has no dependencies and is safe to include once per dump: the
second copy only re-applies themes to dumps added since the first.
"""

from __future__ import annotations

from pretty_inspect.renderers.theme import PALETTE_ROLES

__all__ = ["SCRIPT", "STYLE_TEMPLATE", "THEME_VARIABLES_TEMPLATE", "placeholder"]


def placeholder(role: str) -> str:
    return f"__{role.upper()}__"


THEME_VARIABLES_TEMPLATE = "".join(
    f"--pd-{role.replace('_', '-')}:{placeholder(role)};" for role in PALETTE_ROLES
)

STYLE_TEMPLATE = """
__THEMES__
.pretty-dump{font-family:ui-monospace,SFMono-Regular,Menlo,Consolas,monospace;font-size:13px;
line-height:1.5;background:var(--pd-background);color:var(--pd-text);border:1px solid var(--pd-border);
border-radius:6px;padding:8px 12px;margin:8px 0;overflow-x:auto;position:relative}
.pretty-dump details>.node-children>.node,.pretty-dump details>.node-children>.truncate-notice{margin-left:__INDENT__}
.pretty-dump summary{cursor:pointer;list-style:none;outline:none}
.pretty-dump summary::-webkit-details-marker{display:none}
.pretty-dump summary::before{content:"\\25B8  ";color:var(--pd-muted)}
.pretty-dump details[open]>summary::before{content:"\\25BE  "}
.pretty-dump .node-key{color:var(--pd-key)}
.pretty-dump .node-separator{color:var(--pd-muted);margin:0 .4em}
.pretty-dump .node-type-label{color:var(--pd-muted)}
.pretty-dump .node-type-container-array>summary .node-value{color:var(--pd-array)}
.pretty-dump .node-type-container-object>summary .node-value{color:var(--pd-object)}
.pretty-dump .node-type-string>.node-value{color:var(--pd-string)}
.pretty-dump .node-type-number>.node-value{color:var(--pd-number)}
.pretty-dump .node-type-bool>.node-value{color:var(--pd-bool)}
.pretty-dump .node-type-null>.node-value{color:var(--pd-null)}
.pretty-dump .node-type-unknown>.node-value{color:var(--pd-unknown)}
.pretty-dump .node-type-circular>.node-value{color:var(--pd-circular);font-style:italic}
.pretty-dump .truncate-notice{color:var(--pd-notice);font-style:italic}
.pretty-dump .node-actions{margin-left:.75em;opacity:0;transition:opacity .15s}
.pretty-dump summary:hover>.node-actions,.pretty-dump .node-inline:hover>.node-actions,
.pretty-dump .node-action:focus{opacity:1}
.pretty-dump .node-action{font:inherit;font-size:11px;border:1px solid var(--pd-border);
background:var(--pd-panel);color:var(--pd-text);border-radius:4px;padding:0 6px;margin-left:4px;cursor:pointer}
.pretty-dump .search-result-target{background:var(--pd-accent);color:var(--pd-background);border-radius:3px}
.pretty-dump .search-result-context>summary{outline:1px dashed var(--pd-accent)}
.pretty-dump .exception-summary{color:var(--pd-exception);font-weight:600}
.pretty-dump .exception-info{border-collapse:collapse;margin:.5em 0}
.pretty-dump .exception-info th{text-align:left;color:var(--pd-muted);padding-right:1em;font-weight:normal;vertical-align:top}
.pretty-dump .stack-frames{max-height:20em;overflow-y:auto;border:1px solid var(--pd-border);
border-radius:4px;background:var(--pd-panel)}
.pretty-dump .stack-frame{display:flex;gap:.75em;padding:2px 8px;border-bottom:1px solid var(--pd-border)}
.pretty-dump .stack-index{color:var(--pd-muted)}
.pretty-dump .stack-function{color:var(--pd-accent)}
.pretty-dump .stack-location{color:var(--pd-muted);margin-left:auto}
.pretty-dump .json-content,.pretty-dump .sql-content,.pretty-dump .sql-explain,.pretty-dump .context-content{
margin:.25em 0;padding:.5em;background:var(--pd-panel);border-radius:4px;white-space:pre;overflow-x:auto}
.pretty-dump .json-key{color:var(--pd-key)}
.pretty-dump .json-string{color:var(--pd-string)}
.pretty-dump .json-number{color:var(--pd-number)}
.pretty-dump .json-bool{color:var(--pd-bool)}
.pretty-dump .json-null{color:var(--pd-null)}
.pretty-dump .diff-added{color:var(--pd-diff-added)}
.pretty-dump .diff-removed{color:var(--pd-diff-removed)}
.pretty-dump .diff-modified{color:var(--pd-diff-modified)}
.pretty-dump .diff-unchanged{color:var(--pd-muted)}
.pretty-dump .performance-note{color:var(--pd-muted);font-size:11px}
.pretty-dump .pd-table{border-collapse:collapse;margin:.5em 0 .5em __INDENT__;font-size:12px}
.pretty-dump .pd-table caption{text-align:left;color:var(--pd-muted)}
.pretty-dump .pd-table th,.pretty-dump .pd-table td{border:1px solid var(--pd-border);padding:2px 6px;text-align:left}
.pretty-dump .pd-table th{background:var(--pd-panel)}
.pd-toast{position:fixed;bottom:16px;right:16px;background:#1f2933;color:#f9fafb;padding:6px 12px;
border-radius:4px;font:12px sans-serif;z-index:99999;opacity:.95}
"""

SCRIPT = r"""
(function () {
  'use strict';
  var STORAGE_KEY = 'pretty-inspect.theme.preference';

  if (window.__prettyInspect) {
    window.__prettyInspect.init();
    return;
  }

  function storedPreference() {
    try {
      var value = window.localStorage.getItem(STORAGE_KEY);
      return value === 'light' || value === 'dark' ? value : null;
    } catch (error) {
      return null;
    }
  }

  function storePreference(theme) {
    try {
      window.localStorage.setItem(STORAGE_KEY, theme);
    } catch (error) {
      /* storage may be disabled */
    }
  }

  function systemTheme() {
    if (window.matchMedia && window.matchMedia('(prefers-color-scheme: dark)').matches) {
      return 'dark';
    }
    return 'light';
  }

  function resolveTheme(root) {
    var stored = storedPreference();
    if (stored) {
      return stored;
    }
    var preference = root.getAttribute('data-theme-preference');
    if (preference && preference !== 'auto') {
      return preference;
    }
    var documentTheme = document.documentElement.getAttribute('data-theme');
    if (documentTheme === 'light' || documentTheme === 'dark') {
      return documentTheme;
    }
    return 'auto';
  }

  function applyTheme(root) {
    root.setAttribute('data-theme', resolveTheme(root));
  }

  function currentTheme(root) {
    var theme = root.getAttribute('data-theme');
    return theme === 'auto' ? systemTheme() : theme;
  }

  function setExplicitTheme(theme) {
    storePreference(theme);
    var roots = document.querySelectorAll('.pretty-dump');
    for (var i = 0; i < roots.length; i++) {
      roots[i].setAttribute('data-theme-preference', theme);
      roots[i].setAttribute('data-theme', theme);
    }
  }

  function toggleTheme(root) {
    setExplicitTheme(currentTheme(root) === 'dark' ? 'light' : 'dark');
  }

  function toast(message) {
    var element = document.createElement('div');
    element.className = 'pd-toast';
    element.setAttribute('role', 'status');
    element.textContent = message;
    document.body.appendChild(element);
    window.setTimeout(function () {
      if (element.parentNode) {
        element.parentNode.removeChild(element);
      }
    }, 1800);
  }

  function labelOf(node) {
    if (node.tagName === 'DETAILS') {
      for (var i = 0; i < node.children.length; i++) {
        if (node.children[i].tagName === 'SUMMARY') {
          return node.children[i];
        }
      }
    }
    return node;
  }

  function ownText(node) {
    var label = labelOf(node).cloneNode(true);
    var actions = label.querySelectorAll('.node-actions');
    for (var i = 0; i < actions.length; i++) {
      actions[i].parentNode.removeChild(actions[i]);
    }
    return (label.textContent || '').toLowerCase();
  }

  function expressionMatchesNode(node, term) {
    var expression = node.getAttribute('data-expression');
    return expression !== null && expression.toLowerCase().indexOf(term) !== -1;
  }

  function clearSearch(root) {
    var marked = root.querySelectorAll('.search-result-target, .search-result-context');
    for (var i = 0; i < marked.length; i++) {
      marked[i].classList.remove('search-result-target');
      marked[i].classList.remove('search-result-context');
    }
  }

  function performSearch(scope) {
    var term = window.prompt('Search within this node');
    if (term === null) {
      return;
    }
    term = term.trim().toLowerCase();
    var root = scope.closest('.pretty-dump') || scope;
    clearSearch(root);
    if (!term) {
      return;
    }
    var candidates = [scope].concat(Array.prototype.slice.call(scope.querySelectorAll('[data-node-type]')));
    var matches = 0;
    for (var i = 0; i < candidates.length; i++) {
      var node = candidates[i];
      if (ownText(node).indexOf(term) === -1 && !expressionMatchesNode(node, term)) {
        continue;
      }
      matches++;
      labelOf(node).classList.add('search-result-target');
      var ancestor = node.parentElement ? node.parentElement.closest('details') : null;
      while (ancestor && root.contains(ancestor)) {
        ancestor.open = true;
        ancestor.classList.add('search-result-context');
        ancestor = ancestor.parentElement ? ancestor.parentElement.closest('details') : null;
      }
      if (node.tagName === 'DETAILS') {
        node.open = true;
      }
    }
    toast(matches ? matches + ' match' + (matches === 1 ? '' : 'es') : 'No matches');
  }

  function fallbackCopy(text) {
    var area = document.createElement('textarea');
    area.value = text;
    area.setAttribute('readonly', '');
    area.style.position = 'fixed';
    area.style.opacity = '0';
    document.body.appendChild(area);
    area.select();
    var copied = false;
    try {
      copied = document.execCommand('copy');
    } catch (error) {
      copied = false;
    }
    document.body.removeChild(area);
    toast(copied ? 'Copied JSON' : 'Copy failed');
  }

  function copyNodeJson(node) {
    var raw = node.getAttribute('data-json');
    if (raw === null) {
      return;
    }
    var text = raw;
    try {
      text = JSON.stringify(JSON.parse(raw), null, 2);
    } catch (error) {
      text = raw;
    }
    if (navigator.clipboard && window.isSecureContext) {
      navigator.clipboard.writeText(text).then(function () {
        toast('Copied JSON');
      }, function () {
        fallbackCopy(text);
      });
    } else {
      fallbackCopy(text);
    }
  }

  function unwrap(value) {
    if (value && typeof value === 'object' && !Array.isArray(value)) {
      if (value.__items__ !== undefined) {
        return unwrap(value.__items__);
      }
      if (value.__class !== undefined && value.properties !== undefined) {
        return value.properties;
      }
    }
    return value;
  }

  function normaliseRow(row) {
    row = unwrap(row);
    if (Array.isArray(row)) {
      var indexed = {};
      for (var i = 0; i < row.length; i++) {
        indexed[String(i)] = row[i];
      }
      return indexed;
    }
    if (row && typeof row === 'object') {
      var clean = {};
      for (var key in row) {
        if (Object.prototype.hasOwnProperty.call(row, key) && key.indexOf('__') !== 0) {
          clean[key] = row[key];
        }
      }
      return clean;
    }
    return null;
  }

  function normaliseRows(value) {
    value = unwrap(value);
    var source = [];
    if (Array.isArray(value)) {
      source = value;
    } else if (value && typeof value === 'object') {
      for (var key in value) {
        if (Object.prototype.hasOwnProperty.call(value, key) && key.indexOf('__') !== 0) {
          source.push(value[key]);
        }
      }
    }
    var rows = [];
    for (var i = 0; i < source.length; i++) {
      var row = normaliseRow(source[i]);
      if (row === null) {
        return null;
      }
      rows.push(row);
    }
    return rows.length ? rows : null;
  }

  function buildTabularDataset(value) {
    var rows = normaliseRows(value);
    if (!rows) {
      return null;
    }
    var columns = [];
    var seen = {};
    for (var i = 0; i < rows.length; i++) {
      for (var key in rows[i]) {
        if (Object.prototype.hasOwnProperty.call(rows[i], key) && !seen[key]) {
          seen[key] = true;
          columns.push(key);
        }
      }
    }
    return { columns: columns, rows: rows };
  }

  function formatCellValue(value) {
    if (value === null || value === undefined) {
      return value === null ? 'null' : '';
    }
    if (typeof value === 'object') {
      var inner = unwrap(value);
      if (value.__class !== undefined) {
        return value.__class;
      }
      return Array.isArray(inner) ? '[' + inner.length + ' items]' : JSON.stringify(inner);
    }
    return String(value);
  }

  function renderTable(node) {
    var anchor = labelOf(node);
    var existing = anchor.nextElementSibling;
    if (existing && existing.classList.contains('pd-table')) {
      existing.parentNode.removeChild(existing);
      return;
    }
    var data;
    try {
      data = JSON.parse(node.getAttribute('data-json'));
    } catch (error) {
      toast('Not tabular data');
      return;
    }
    var dataset = buildTabularDataset(data);
    if (!dataset) {
      toast('Not tabular data');
      return;
    }
    var table = document.createElement('table');
    table.className = 'pd-table';
    var root = node.closest('.pretty-dump');
    if (root && root.getAttribute('data-table-meta') === '1' && node.getAttribute('data-expression')) {
      var caption = document.createElement('caption');
      caption.textContent = node.getAttribute('data-expression') + ' (' + dataset.rows.length + ' rows)';
      table.appendChild(caption);
    }
    var head = document.createElement('tr');
    for (var c = 0; c < dataset.columns.length; c++) {
      var th = document.createElement('th');
      th.textContent = dataset.columns[c];
      head.appendChild(th);
    }
    table.appendChild(head);
    for (var r = 0; r < dataset.rows.length; r++) {
      var tr = document.createElement('tr');
      for (var k = 0; k < dataset.columns.length; k++) {
        var td = document.createElement('td');
        td.textContent = formatCellValue(dataset.rows[r][dataset.columns[k]]);
        tr.appendChild(td);
      }
      table.appendChild(tr);
    }
    if (node.tagName === 'DETAILS') {
      node.open = true;
    }
    anchor.parentNode.insertBefore(table, anchor.nextSibling);
  }

  function onClick(event) {
    var button = event.target.closest ? event.target.closest('[data-action]') : null;
    if (!button || !button.closest('.pretty-dump')) {
      return;
    }
    event.preventDefault();
    event.stopPropagation();
    var node = button.closest('[data-node-type]');
    var action = button.getAttribute('data-action');
    if (action === 'theme') {
      toggleTheme(button.closest('.pretty-dump'));
    } else if (node && action === 'search') {
      performSearch(node);
    } else if (node && action === 'copy') {
      copyNodeJson(node);
    } else if (node && action === 'table') {
      renderTable(node);
    }
  }

  function init() {
    var roots = document.querySelectorAll('.pretty-dump');
    for (var i = 0; i < roots.length; i++) {
      applyTheme(roots[i]);
    }
  }

  document.addEventListener('click', onClick, true);
  if (window.matchMedia) {
    var query = window.matchMedia('(prefers-color-scheme: dark)');
    var listener = function () { init(); };
    if (query.addEventListener) {
      query.addEventListener('change', listener);
    } else if (query.addListener) {
      query.addListener(listener);
    }
  }
  window.__prettyInspect = { init: init, setExplicitTheme: setExplicitTheme };
  if (document.readyState === 'loading') {
    document.addEventListener('DOMContentLoaded', init);
  } else {
    init();
  }
})();
"""
