"""
JavaScript snippets evaluated inside browser pages.
"""

STEALTH_SCRIPT = """
() => {
  Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
  Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
  Object.defineProperty(navigator, 'languages', { get: () => ['tr-TR', 'tr', 'en-US', 'en'] });
  window.chrome = { runtime: {} };
  if (window.navigator.permissions && window.navigator.permissions.query) {
    const originalQuery = window.navigator.permissions.query.bind(window.navigator.permissions);
    window.navigator.permissions.query = (parameters) => (
      parameters.name === 'notifications'
        ? Promise.resolve({ state: Notification.permission })
        : originalQuery(parameters)
    );
  }
  return true;
}
"""

PAGE_EXTRACTION_SCRIPT = """
() => {
  const data = {};
  const text = (selector) => {
    const el = document.querySelector(selector);
    return el ? el.textContent.trim() : '';
  };

  const title = text('h1, h2, .title, .product-title');
  if (title) data.title = title;
  const description = text('.description, .content, p');
  if (description) data.description = description;
  const price = text('.price, .premium, .cost, [class*="price"]');
  if (price) data.price = price;

  const phone = document.querySelector('.phone, .tel, [href^="tel:"]');
  if (phone) data.phone = phone.textContent.trim() || phone.getAttribute('href');
  const email = document.querySelector('.email, .mail, [href^="mailto:"]');
  if (email) data.email = email.textContent.trim() || email.getAttribute('href');
  const address = text('.address, .location, .contact-address');
  if (address) data.address = address;

  const links = Array.from(document.querySelectorAll('a[href]')).map(a => ({
    text: a.textContent.trim(),
    href: a.href,
  }));
  if (links.length > 0) data.links = links;

  const images = Array.from(document.querySelectorAll('img[src]')).map(img => ({
    alt: img.alt,
    src: img.src,
  }));
  if (images.length > 0) data.images = images;

  return data;
}
"""

QUOTE_EXTRACTION_SCRIPT = """
(selectors) => {
  const data = {};
  const amount = (text) => {
    const cleaned = text.replace(/[^\\d.,]/g, '');
    if (!cleaned) return null;
    let normalized = cleaned;
    if (cleaned.includes(',') && cleaned.lastIndexOf(',') > cleaned.lastIndexOf('.')) {
      normalized = cleaned.replace(/\\./g, '').replace(',', '.');
    } else {
      normalized = cleaned.replace(/,/g, '');
    }
    const value = parseFloat(normalized);
    return !isNaN(value) && value > 0 ? value : null;
  };
  const firstAmount = (list) => {
    for (const selector of list || []) {
      const el = document.querySelector(selector);
      if (!el) continue;
      const value = amount(el.textContent.trim());
      if (value !== null) return value;
    }
    return null;
  };
  const firstText = (list, accept) => {
    for (const selector of list || []) {
      const el = document.querySelector(selector);
      if (!el) continue;
      const value = el.textContent.trim();
      if (accept(value)) return value;
    }
    return null;
  };

  const premium = firstAmount(selectors.premium);
  if (premium !== null) data.premium = premium;
  const coverage = firstAmount(selectors.coverage_amount);
  if (coverage !== null) data.coverage_amount = coverage;
  const discount = firstAmount(selectors.discount);
  if (discount !== null) data.discount = discount;

  const policyNumber = firstText(selectors.policy_number, (v) => v.length > 5);
  if (policyNumber) data.policy_number = policyNumber;
  const validUntil = firstText(selectors.valid_until, (v) => /\\d{1,2}[./]\\d{1,2}[./]\\d{2,4}/.test(v));
  if (validUntil) data.valid_until = validUntil;

  const features = [];
  const featureSelectors = selectors.features || [];
  if (featureSelectors.length) document.querySelectorAll(featureSelectors.join(', ')).forEach(el => {
    const value = el.textContent.trim();
    if (value.length > 10 && value.length < 100) features.push(value);
  });
  if (features.length > 0) data.features = features.slice(0, 10);

  return data;
}
"""
