"""JavaScript sources evaluated inside the page under test.

Every source is a function expression. Playwright evaluates it directly
with ``evaluate(source, arg)``; Selenium runs it through ``as_script``,
which forwards ``execute_script`` arguments to the function.
"""

from __future__ import annotations


def as_script(function_source: str) -> str:
    """Wrap a function expression for WebDriver ``execute_script``."""
    return f"return ({function_source}).apply(null, arguments);"


VISIBILITY = """(elem, recursive) => {
    let robj = elem;
    while (robj && robj.nodeType && robj.nodeType !== 9) {
        if (robj.nodeType === 1 && robj.hasAttribute('hidden')) {
            return false;
        }
        const style = (robj.nodeType === 1) ? getComputedStyle(robj, '') : null;
        if (robj.nodeType === 1 && (
            !style || style.display === 'none' || style.visibility === 'hidden'
        )) {
            return false;
        }
        if (recursive !== true) {
            break;
        }
        robj = robj.parentNode;
    }
    return !!robj;
}"""

VISIBILITY_BATCH = """(elements) => {
    const cache = new Map();
    return elements.map((item) => {
        let elem = item;
        if (!elem) {
            return false;
        }
        while (elem && elem.nodeType && elem.nodeType !== 9) {
            let visible = cache.get(elem);
            if (visible === undefined) {
                if (elem.nodeType !== 1) {
                    visible = true;
                } else if (elem.hasAttribute('hidden')) {
                    visible = false;
                } else {
                    const style = getComputedStyle(elem, '');
                    visible = !!(
                        style
                        && style.display !== 'none'
                        && style.visibility !== 'hidden'
                    );
                }
                cache.set(elem, visible);
            }
            if (!visible) {
                return false;
            }
            elem = elem.parentNode;
        }
        return !!elem;
    });
}"""

_WALK_PATH = """(root, segments) => {
    let obj = root;
    for (const segment of segments) {
        if (obj === null || obj === undefined || !(segment in Object(obj))) {
            return [false, null];
        }
        obj = obj[segment];
    }
    return [true, (obj === undefined) ? null : obj];
}"""

PROPERTY_PATH = f"""(elem, segments) => ({_WALK_PATH})(elem, segments)"""

GLOBAL_PATH = f"""(segments) => ({_WALK_PATH})(window, segments)"""

PARENT_NODE = """(elem) => {
    const parent = elem.parentNode;
    return (parent && parent.nodeType === 1) ? parent : null;
}"""

CLOSEST = """(elem, selector) => elem.closest(selector)"""

HAS_ATTRIBUTE = """(elem, name) => elem.hasAttribute(name)"""

HAS_CLASS = """(elem, name) => elem.classList.contains(name)"""

SELECT_OPTIONS = """(elem) => {
    if (!elem.options) {
        return null;
    }
    return {
        multiple: !!elem.multiple,
        values: Array.from(elem.options, (option) => option.value),
    };
}"""

APPLY_SELECTION = """(elem, selection) => {
    const [index, selected] = selection;
    if (elem.multiple) {
        elem.options[index].selected = selected;
    } else {
        elem.selectedIndex = index;
    }
}"""

DISPATCH_CHANGE = """(elem) => {
    elem.dispatchEvent(new Event('change', { bubbles: true, cancelable: false }));
}"""

DISPATCH_BLUR = """(elem) => {
    elem.dispatchEvent(new FocusEvent('blur', { bubbles: false, cancelable: false }));
}"""

DISPATCH_CLICK = """(elem) => {
    elem.dispatchEvent(new MouseEvent('click', {
        view: elem.ownerDocument.defaultView,
        bubbles: true,
        cancelable: true,
    }));
}"""

GET_VALUE = """(elem) => elem.value"""

CLEAR_VALUE = """(elem) => { elem.value = ''; }"""

DISPATCH_INPUT = """(elem, value) => {
    elem.value = value;
    elem.dispatchEvent(new InputEvent('input', { bubbles: true, cancelable: true }));
}"""

SELECTOR_STATE = f"""(selector) => {{
    const elem = document.documentElement.querySelector(selector);
    if (!elem) {{
        return [false, false];
    }}
    return [true, ({VISIBILITY})(elem, true)];
}}"""

DOCUMENT_CONTENT = """() => (document.documentElement ? document.documentElement.innerHTML : '')"""

DOCUMENT_ELEMENT = """() => document.documentElement"""

ARM_LOAD_MARKER = """(token) => {
    window.__domharnessNavigation = token;
}"""

LOAD_STATE = """(token) => (
    window.__domharnessNavigation !== token && document.readyState === 'complete'
)"""

ERROR_COLLECTOR = """() => {
    if (window.__domharnessErrors) {
        return;
    }
    window.__domharnessErrors = [];
    window.addEventListener('error', (event) => {
        window.__domharnessErrors.push(String(event.message || event.error));
    });
    window.addEventListener('unhandledrejection', (event) => {
        window.__domharnessErrors.push(String(event.reason));
    });
}"""

TAKE_ERRORS = """() => {
    const errors = window.__domharnessErrors || [];
    if (window.__domharnessErrors) {
        window.__domharnessErrors = [];
    }
    return errors;
}"""

# Emulates ':scope' in Element#querySelector(All) for engines lacking it.
SCOPE_POLYFILL = """() => {
    try {
        document.querySelector(':scope *');
        return;
    } catch (e) {
        // fall through to the polyfill
    }
    const proto = window.Element.prototype;
    const scope = /:scope(?![\\w-])/gi;
    const wrap = (qsa) => function withScope(selectors) {
        if (!selectors || !selectors.match(scope)) {
            return qsa.apply(this, arguments);
        }
        const attr = `q${Math.floor(Math.random() * 9000000) + 1000000}`;
        this.setAttribute(attr, '');
        try {
            return qsa.call(this, selectors.replace(scope, `[${attr}]`));
        } finally {
            this.removeAttribute(attr);
        }
    };
    proto.querySelector = wrap(proto.querySelector);
    proto.querySelectorAll = wrap(proto.querySelectorAll);
    if (proto.matches) {
        proto.matches = wrap(proto.matches);
    }
    if (proto.closest) {
        proto.closest = wrap(proto.closest);
    }
}"""

# WebDriver async script: the last argument is the completion callback.
FETCH = """const [url, options, done] = arguments;
fetch(url, options)
    .then(async (resp) => done({
        status: resp.status,
        headers: Object.fromEntries(resp.headers.entries()),
        body: await resp.text(),
        url: resp.url,
    }))
    .catch((e) => done({ error: String(e) }));"""
