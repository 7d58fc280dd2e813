"""
Muck Rack extractors.
Turn rendered search-result pages into detail URLs and detail pages into records.
"""

import re
from typing import Dict, List, Optional, Tuple

from bs4 import BeautifulSoup

from .browser import PageHandle, WaitPolicy
from .utils import absolute_url, clean_text, unique

BASE_URL = "https://forager.muckrack.com"

# Search filters: location 43972, articles within the last year
PROFILE_SEARCH_URL = (
    f"{BASE_URL}/search/results?sort=date&q=&result_type=person"
    "&search_source=homepage&daterange_preset=8&locations=43972"
)
OUTLET_SEARCH_URL = (
    f"{BASE_URL}/search/results?sort=outlet_name_a_z&q=&result_type=media_outlet"
    "&search_source=homepage&daterange_preset=8&exclude_media_types=13"
    "&check_media_types=exclude&locations=43972"
)

LISTING_WAIT = WaitPolicy(
    ready_selector='[role="tabpanel"] h5',
    no_results_selector='.search-no-results',
    no_results_text=('No results found', 'did not match any results'),
)
DETAIL_WAIT = WaitPolicy(ready_selector='h1')

EMAIL_RE = re.compile(r'\b[a-zA-Z0-9._-]+@[a-zA-Z0-9._-]+\.[a-zA-Z0-9_-]+\b')
OUTLET_PATHS = ('/media-outlet/', '/podcast/')

# (host fragment, record key), first match wins
SOCIAL_HOSTS: List[Tuple[Tuple[str, ...], str]] = [
    (('twitter.com', 'x.com'), 'twitter_url'),
    (('linkedin.com',), 'linkedin_url'),
    (('instagram.com',), 'instagram_url'),
    (('facebook.com',), 'facebook_url'),
    (('youtube.com', 'youtu.be'), 'youtube_url'),
    (('threads.net',), 'threads_url'),
    (('tumblr.com',), 'tumblr_url'),
    (('pinterest.com',), 'pinterest_url'),
    (('flickr.com',), 'flickr_url'),
    (('tiktok.com',), 'tiktok_url'),
]


def _soup(page: PageHandle) -> BeautifulSoup:
    return BeautifulSoup(page.html, 'html.parser')


def _text(node) -> str:
    return clean_text(node.get_text(" ", strip=True)) if node is not None else ""


def _section_after_heading(soup: BeautifulSoup, tag: str, label: str):
    heading = soup.find(tag, string=re.compile(re.escape(label), re.IGNORECASE))
    return heading.parent if heading is not None else None


def classify_social_links(hrefs: List[str]) -> Dict[str, str]:
    """Map social-network links to record keys; unmatched links land in other_urls."""
    found: Dict[str, str] = {key: "" for _, key in SOCIAL_HOSTS}
    other = []
    for href in hrefs:
        lowered = href.lower()
        for hosts, key in SOCIAL_HOSTS:
            if any(host in lowered for host in hosts):
                found[key] = found[key] or href
                break
        else:
            other.append(href)
    found['other_urls'] = "; ".join(other)
    return found


def first_email(text: str, exclude: Tuple[str, ...] = ('muckrack.com', 'example.com')) -> str:
    for match in EMAIL_RE.findall(text or ""):
        if not any(domain in match for domain in exclude):
            return match
    return ""


class MuckRackExtractor:
    """Shared listing extraction for Muck Rack search results."""

    name = ""
    search_url = ""
    columns: List[Tuple[str, str]] = []
    listing_wait = LISTING_WAIT
    detail_wait = DETAIL_WAIT

    def accepts(self, href: str) -> bool:
        raise NotImplementedError

    def list_urls(self, page: PageHandle) -> List[str]:
        """
        Extract detail URLs from a search results page.

        Returns:
            Absolute URLs in page order, possibly empty
        """
        soup = _soup(page)
        urls = []
        for link in soup.select('h5 > a[href^="/"]'):
            href = link.get('href', '')
            if self.accepts(href):
                urls.append(absolute_url(href, BASE_URL))
        return unique(urls)

    def extract_detail(self, page: PageHandle) -> Optional[dict]:
        raise NotImplementedError


class ProfileExtractor(MuckRackExtractor):
    """Journalist profile pages."""

    name = "profiles"
    search_url = PROFILE_SEARCH_URL
    columns = [
        ('Full Name', 'full_name'),
        ('First Name', 'first_name'),
        ('Last Name', 'last_name'),
        ('Verified', 'is_verified'),
        ('Title', 'title'),
        ('Primary Outlet', 'primary_outlet'),
        ('Other Outlets', 'other_outlets'),
        ('Location', 'location'),
        ('Bio', 'bio'),
        ('Twitter Handle', 'twitter_handle'),
        ('Twitter Followers', 'twitter_followers'),
        ('Twitter Posts', 'twitter_posts'),
        ('Default Email', 'email'),
        ('Other Emails', 'all_emails'),
        ('LinkedIn URL', 'linkedin_url'),
        ('Instagram Handle', 'instagram_handle'),
        ('Instagram URL', 'instagram_url'),
        ('Facebook URL', 'facebook_url'),
        ('YouTube URL', 'youtube_url'),
        ('Threads URL', 'threads_url'),
        ('Tumblr URL', 'tumblr_url'),
        ('Pinterest URL', 'pinterest_url'),
        ('Flickr URL', 'flickr_url'),
        ('TikTok URL', 'tiktok_url'),
        ('Blog URL', 'blog_url'),
        ('Website', 'website'),
        ('Other URLs', 'other_urls'),
        ('Profile Photo URL', 'profile_photo_url'),
        ('Beats', 'beats'),
        ('Profile URL', 'profile_url'),
    ]

    def accepts(self, href: str) -> bool:
        return bool(href) and not any(path in href for path in OUTLET_PATHS)

    def extract_detail(self, page: PageHandle) -> Optional[dict]:
        soup = _soup(page)
        h1 = soup.find('h1')
        full_name = _text(h1)
        if not full_name:
            return None

        title = ""
        outlets = []
        job_list = soup.select_one('ul.mr-person-job-items')
        if job_list is not None:
            for index, item in enumerate(job_list.find_all('li')):
                link = item.find('a')
                outlet = _text(link)
                job_text = _text(item).replace(outlet, '').replace(',', '').strip()
                if index == 0:
                    title = job_text
                if outlet:
                    outlets.append(outlet)
        for link in soup.select('.profile-details-item a'):
            outlets.append(_text(link))
        outlets = [o for o in unique(outlets) if o]

        location_node = soup.select_one('div.person-details-location')
        location = _text(location_node).replace('Location', '', 1).strip()

        bio = _text(soup.select_one('.profile-intro .mr-card-content .fs-5'))
        beats = [b for b in (_text(a) for a in soup.select('a[href*="/beat/"]')) if b and len(b) < 50]

        body_text = soup.get_text(" ", strip=True)
        followers = re.search(r'([\d,]+)\s+followers', body_text)
        posts = re.search(r'([\d,]+)\s+X posts', body_text)

        emails = unique(
            _text(b) for b in soup.select('.js-icon-envelope button') if '@' in _text(b)
        )
        email = emails[0] if emails else ""
        if not email:
            email = first_email(" ".join(_text(b) for b in soup.find_all('button'))) or first_email(body_text)

        social_hrefs = []
        blog_url = website = ""
        for link in soup.select('.profile-contact-social a[href]'):
            href = link['href']
            if href == '#':
                continue
            label = link.get('data-bs-original-title') or _text(link)
            if 'Blog' in label:
                blog_url = href
            elif 'Website' in label:
                website = href
            else:
                social_hrefs.append(href)
        social = classify_social_links(social_hrefs)

        twitter_handle = ""
        twitter_url = social.get('twitter_url', '')
        handle_match = (re.search(r'screen_name=([^&]+)', twitter_url)
                        or re.search(r'(?:twitter|x)\.com/([^/?]+)', twitter_url))
        if handle_match:
            twitter_handle = handle_match.group(1)

        instagram_handle = ""
        instagram_match = re.search(r'instagram\.com/([^/?]+)', social.get('instagram_url', ''))
        if instagram_match:
            instagram_handle = instagram_match.group(1)

        photo = soup.select_one('img[alt*="on Muck Rack"]')
        name_parts = full_name.split(' ')

        return {
            'full_name': full_name,
            'first_name': name_parts[0],
            'last_name': ' '.join(name_parts[1:]),
            'is_verified': soup.select_one('h1 + .text-success, h1 .text-success') is not None,
            'title': title,
            'primary_outlet': outlets[0] if outlets else '',
            'other_outlets': '; '.join(outlets[1:]),
            'location': location,
            'bio': bio,
            'twitter_handle': twitter_handle,
            'twitter_followers': int(followers.group(1).replace(',', '')) if followers else 0,
            'twitter_posts': int(posts.group(1).replace(',', '')) if posts else 0,
            'email': email,
            'all_emails': '; '.join(emails),
            'instagram_handle': instagram_handle,
            'blog_url': blog_url,
            'website': website,
            'profile_photo_url': photo.get('src', '') if photo is not None else '',
            'beats': '; '.join(beats),
            'profile_url': page.url,
            **social,
        }


class OutletExtractor(MuckRackExtractor):
    """Media outlet and podcast pages."""

    name = "outlets"
    search_url = OUTLET_SEARCH_URL
    columns = [
        ('Outlet Name', 'outlet_name'),
        ('Outlet Type', 'outlet_type'),
        ('Verified', 'is_verified'),
        ('Podcast?', 'is_podcast'),
        ('Description', 'description'),
        ('Network', 'network'),
        ('Language', 'language'),
        ('Genre', 'genre'),
        ('Scope', 'scope'),
        ('Location', 'outlet_location'),
        ('Address', 'address'),
        ('Phone', 'phone'),
        ('Email', 'email'),
        ('Contact Form', 'contact_form'),
        ('Website', 'website'),
        ('Domain Authority', 'domain_authority'),
        ('Twitter URL', 'twitter_url'),
        ('Facebook URL', 'facebook_url'),
        ('LinkedIn URL', 'linkedin_url'),
        ('Instagram URL', 'instagram_url'),
        ('YouTube URL', 'youtube_url'),
        ('Logo URL', 'logo_url'),
        ('Outlet URL', 'outlet_url'),
    ]

    def accepts(self, href: str) -> bool:
        return any(path in href for path in OUTLET_PATHS)

    @staticmethod
    def _details(soup: BeautifulSoup, is_podcast: bool) -> Dict[str, str]:
        """Label -> value pairs from the stats table or the podcast detail list."""
        details = {}
        if is_podcast:
            for item in soup.select('.mr-podcast-intro-section-content li'):
                cells = item.find_all('div')
                if len(cells) >= 2:
                    details[_text(cells[0]).lower()] = _text(cells[-1])
        else:
            for row in soup.select('.profile-stats table tr'):
                label, value = row.find('th'), row.find('td')
                if label is not None and value is not None:
                    details[_text(label).lower()] = _text(value)
        return details

    def extract_detail(self, page: PageHandle) -> Optional[dict]:
        soup = _soup(page)
        is_podcast = '/podcast/' in page.url.lower()
        h1 = soup.find('h1')
        outlet_name = _text(h1)
        if not outlet_name:
            return None

        intro = h1.find_parent(class_=re.compile(r'mr-card')) or soup
        outlet_type = _text(intro.select_one('.fw-medium'))
        is_verified = 'verified' in _text(h1.find_next_sibling()).lower()

        description = ""
        for paragraph in soup.find_all('p'):
            text = _text(paragraph)
            if len(text) > 50 and 'Request update' not in text and 'Share this page' not in text:
                description = text
                break

        details = self._details(soup, is_podcast)

        address = phone = email = contact_form = website = ""
        contact = _section_after_heading(soup, 'h5', 'Contact information')
        if contact is not None:
            address = _text(contact.select_one('a[href*="google.com/maps"]'))
            phone = _text(contact.select_one('a[href^="tel:"]'))
            email = _text(contact.select_one('a[href^="mailto:"]')) or first_email(_text(contact))
            form = contact.select_one('a[href*="contact"]')
            if form is not None and 'contact form' in _text(form).lower():
                contact_form = form.get('href', '')
            for link in contact.select('a.mr-contact[href]'):
                href = link['href']
                if not any(marker in href for marker in ('google.com/maps', 'tel:', 'mailto:')):
                    website = href

        social_section = _section_after_heading(soup, 'h5', 'Social Media')
        hrefs = [a['href'] for a in social_section.select('a[href*="http"]')] if social_section is not None else []
        social = classify_social_links(hrefs)

        logo_url = ""
        for img in soup.find_all('img'):
            src = img.get('src', '')
            if outlet_name in img.get('alt', '') or (src and 'avatar' not in src and 'icon' not in src):
                logo_url = src
                break

        return {
            'outlet_name': outlet_name,
            'outlet_type': outlet_type,
            'is_verified': is_verified,
            'is_podcast': is_podcast,
            'description': description,
            'network': details.get('network', ''),
            'language': details.get('language', details.get('languages', '')),
            'genre': details.get('genre', ''),
            'scope': details.get('scope', ''),
            'outlet_location': details.get('location', ''),
            'domain_authority': details.get('domain authority', ''),
            'address': address,
            'phone': phone,
            'email': email,
            'contact_form': contact_form,
            'website': website,
            'twitter_url': social.get('twitter_url', ''),
            'facebook_url': social.get('facebook_url', ''),
            'linkedin_url': social.get('linkedin_url', ''),
            'instagram_url': social.get('instagram_url', ''),
            'youtube_url': social.get('youtube_url', ''),
            'logo_url': logo_url,
            'outlet_url': page.url,
        }


EXTRACTORS = {
    ProfileExtractor.name: ProfileExtractor,
    OutletExtractor.name: OutletExtractor,
}


def get_extractor(target: str) -> MuckRackExtractor:
    """Instantiate the extractor for a crawl target."""
    try:
        return EXTRACTORS[target]()
    except KeyError:
        raise ValueError(f"Invalid target: {target}. Must be one of {sorted(EXTRACTORS)}") from None
