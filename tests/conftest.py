import pytest


AMAZON_PAGE = """
<html><body><div class="s-main-slot">
  <div data-component-type="s-search-result" data-asin="B000SPONS1" class="s-result-item AdHolder">
    <h2><a href="/sspa/click?ie=UTF8"><span>Acme Blue Widget Promo Pack</span></a></h2>
    <span class="a-price"><span class="a-offscreen">$8.99</span></span>
  </div>
  <div data-component-type="s-search-result" data-asin="B000SPONS2" class="s-result-item">
    <span class="a-color-secondary">Sponsored</span>
    <h2><a href="/Acme-Widget-Ad/dp/B000SPONS2"><span>Acme Widget Labelled Ad</span></a></h2>
    <span class="a-price"><span class="a-offscreen">$7.99</span></span>
  </div>
  <div data-component-type="s-search-result" data-asin="" class="s-result-item"></div>
  <div data-component-type="s-search-result" data-asin="B000TEST01" class="s-result-item">
    <h2><a class="a-link-normal" href="/Acme-Blue-Widget/dp/B000TEST01?ref=sr_1_1"><span>Acme Blue Widget 10oz</span></a></h2>
    <span class="a-price"><span class="a-offscreen">$9.99</span></span>
    <img class="s-image" src="https://m.media-amazon.com/images/I/widget.jpg">
    <span class="a-icon-alt">4.5 out of 5 stars</span>
  </div>
  <div data-component-type="s-search-result" data-asin="B000TEST02" class="s-result-item">
    <h2><a href="/Other/dp/B000TEST02"><span>Totally Unrelated Item</span></a></h2>
    <span class="a-price"><span class="a-price-whole">5.</span><span class="a-price-fraction">49</span></span>
  </div>
</div></body></html>
"""


@pytest.fixture
def amazon_page():
    return AMAZON_PAGE
