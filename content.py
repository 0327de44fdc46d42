"""Blog posts and career resources shown on the public pages."""

from typing import Dict, List, Optional

BLOG_POSTS: List[Dict] = [
    {
        'id': 1,
        'slug': 'first-job-interview-tips',
        'title': 'How to Ace Your First Job Interview as a Fresh Graduate',
        'excerpt': 'Landing your first job interview is exciting but nerve-wracking. Learn proven strategies to make a lasting impression.',
        'content': """## Research the company
Read the company website, recent news and the job description before the interview. Note two or three things you genuinely find interesting so you can bring them up naturally.

## Prepare your stories
Most questions are about how you handled a situation. Prepare short stories from projects, internships and college activities using the situation, task, action and result structure.

## Practice out loud
Rehearse answers to common questions with a friend or in front of a mirror. Speaking the words once makes them far easier to say under pressure.

## Ask good questions
End the interview with questions about the team, the first months in the role and how success is measured. It shows you are already thinking about doing the job well.

## Follow up
Send a short thank-you note within a day, mentioning something specific from the conversation.""",
        'category': 'Interview Tips',
        'author': 'Sarah Johnson',
        'author_role': 'Career Coach & Former HR Director',
        'date': '2025-01-15',
        'read_time': '8 min read',
        'image': 'https://images.unsplash.com/photo-1565688534245-05d6b5be184a?w=800',
        'tags': ['interview', 'career tips', 'freshers', 'job search'],
    },
    {
        'id': 2,
        'slug': 'resume-mistakes-freshers',
        'title': '10 Common Resume Mistakes Fresh Graduates Make (And How to Fix Them)',
        'excerpt': 'Your resume is your first impression with potential employers. Discover the most common mistakes and how to avoid them.',
        'content': """## One resume for every job
Tailor the summary and skills to each role. Recruiters notice when a resume was written for someone else's job description.

## Duties instead of results
Replace "responsible for" with what you achieved. Start each line with an action verb such as led, built, improved or reduced, and add numbers wherever you can.

## Layouts that confuse tracking systems
Tables, text boxes and images often break applicant tracking systems. Use a clean template and standard section headings.

## Typos and inconsistent dates
Proofread twice and ask someone else to read it once. Keep every date in the same format.

## Missing links
Add your portfolio, GitHub or LinkedIn profile so the recruiter can see your work.""",
        'category': 'Resume Building',
        'author': 'Michael Chen',
        'author_role': 'Senior Technical Recruiter at Fortune 500',
        'date': '2025-01-12',
        'read_time': '10 min read',
        'image': 'https://images.unsplash.com/photo-1586281380349-632531db7ed4?w=800',
        'tags': ['resume', 'career tips', 'freshers', 'job search'],
    },
    {
        'id': 3,
        'slug': 'skill-based-hiring-trend',
        'title': 'Why Skill-Based Hiring is the Future: What Freshers Need to Know',
        'excerpt': 'The job market is shifting from degree-focused to skill-focused hiring. Understanding this trend can give you a competitive edge.',
        'content': """## From degrees to demonstrated skills
More employers are dropping degree requirements and asking candidates to show what they can do. Assessments, portfolios and verified skills carry more weight than where you studied.

## What this means for you
Pick the skills your target roles ask for and prove them. Complete skill assessments, build small projects and keep your profile up to date.

## Keep learning
Skills age quickly. Set aside time each month to learn something new and add it to your profile once you can use it.""",
        'category': 'Industry Trends',
        'author': 'Priya Sharma',
        'author_role': 'Talent Acquisition Lead & Industry Analyst',
        'date': '2025-01-10',
        'read_time': '9 min read',
        'image': 'https://images.unsplash.com/photo-1521737604893-d14cc237f11d?w=800',
        'tags': ['hiring trends', 'skills', 'career development', 'industry'],
    },
    {
        'id': 4,
        'slug': 'linkedin-profile-optimization',
        'title': 'LinkedIn Profile Optimization: A Complete Guide for Job Seekers',
        'excerpt': 'Your LinkedIn profile is more than just an online resume. Learn how to optimize every section to attract recruiters.',
        'content': """## Headline
Your headline is searched by recruiters. Describe what you do and what you want to do next, not only your current title.

## About section
Write in the first person. Cover your strengths, the problems you like solving and the kind of role you are looking for.

## Skills and endorsements
List the skills recruiters search for in your field and ask classmates or colleagues to endorse the ones they have seen you use.

## Activity
Share what you are learning and comment on posts in your field. An active profile shows up more often in searches.""",
        'category': 'Personal Branding',
        'author': 'David Martinez',
        'author_role': 'LinkedIn Trainer & Personal Branding Consultant',
        'date': '2025-01-08',
        'read_time': '11 min read',
        'image': 'https://images.unsplash.com/photo-1611944212129-29977ae1398c?w=800',
        'tags': ['linkedin', 'personal branding', 'networking', 'career tips'],
    },
    {
        'id': 5,
        'slug': 'remote-work-skills',
        'title': 'Essential Skills for Landing Remote Jobs in 2025',
        'excerpt': 'Remote work is here to stay. Discover the skills and strategies that will make you an attractive candidate for remote positions.',
        'content': """## Written communication
Remote teams run on writing. Practise clear status updates, short design notes and well structured messages.

## Self-management
Show employers that you can plan your own work. Mention projects you finished independently and how you tracked progress.

## Tools
Get comfortable with video calls, shared documents, issue trackers and version control. Many remote interviews include a short exercise with these tools.

## Time zones
Be explicit about your working hours and how much overlap you can offer with the team.""",
        'category': 'Remote Work',
        'author': 'Emily Taylor',
        'author_role': 'Remote Work Strategist & Career Coach',
        'date': '2025-01-05',
        'read_time': '12 min read',
        'image': 'https://images.unsplash.com/photo-1593642632559-0c6d3fc62b89?w=800',
        'tags': ['remote work', 'career tips', 'skills', 'job search'],
    },
    {
        'id': 6,
        'slug': 'salary-negotiation-freshers',
        'title': 'Salary Negotiation for Freshers: How to Ask for What You Deserve',
        'excerpt': 'Many fresh graduates leave money on the table. Learn the art of professional salary negotiation.',
        'content': """## Know the market
Look up salary ranges for the role, city and company size. Talk to seniors from your college who joined similar companies.

## Let them go first
When asked for a number early, give a researched range or ask for the budget of the role.

## Negotiate the whole offer
Joining bonus, learning budget, relocation support and review timelines are often easier to change than base pay.

## Stay professional
Be polite, specific and ready to accept. A reasonable request rarely costs you an offer.""",
        'category': 'Compensation',
        'author': 'Robert Kim',
        'author_role': 'Compensation Consultant & Former HR Manager',
        'date': '2025-01-03',
        'read_time': '10 min read',
        'image': 'https://images.unsplash.com/photo-1554224155-6726b3ff858f?w=800',
        'tags': ['salary', 'negotiation', 'freshers', 'career tips'],
    },
    {
        'id': 7,
        'slug': 'networking-for-introverts',
        'title': 'Networking for Introverts: Building Connections Without the Anxiety',
        'excerpt': "Networking doesn't have to mean working the room at crowded events. Discover strategies that work for quiet professionals.",
        'content': """## Start online
Comment thoughtfully on posts, join community forums and reach out with short, specific messages.

## One-to-one conversations
Ask for twenty-minute chats instead of attending large events. Prepare a few questions in advance.

## Give first
Share useful articles, introduce people to each other and offer help. Relationships built on generosity last longer.

## Follow up
Keep a simple list of people you have met and check in every few months.""",
        'category': 'Networking',
        'author': 'Amanda Foster',
        'author_role': 'Career Development Specialist',
        'date': '2025-01-01',
        'read_time': '9 min read',
        'image': 'https://images.unsplash.com/photo-1515187029135-18ee286d815b?w=800',
        'tags': ['networking', 'introverts', 'career tips', 'professional development'],
    },
    {
        'id': 8,
        'slug': 'first-90-days-new-job',
        'title': 'Your First 90 Days: How to Set Yourself Up for Success in a New Job',
        'excerpt': 'The first 90 days in a new role are critical. Learn how to make a lasting impression and build a foundation for growth.',
        'content': """## Days 1-30: learn
Meet your team, understand how work flows and ask many questions. Write down what you learn.

## Days 31-60: contribute
Pick a few small tasks you can finish well. Early wins build trust.

## Days 61-90: own something
Take responsibility for a piece of work end to end and agree on goals for the next quarter with your manager.""",
        'category': 'Career Growth',
        'author': 'James Wilson',
        'author_role': 'Leadership Coach & Former VP of Operations',
        'date': '2024-12-28',
        'read_time': '11 min read',
        'image': 'https://images.unsplash.com/photo-1522071820081-009f0129c71c?w=800',
        'tags': ['new job', 'onboarding', 'career tips', 'professional development'],
    },
    {
        'id': 9,
        'slug': 'building-portfolio-without-experience',
        'title': 'How to Build an Impressive Portfolio When You Have No Work Experience',
        'excerpt': 'No professional experience? No problem. Learn how to create a portfolio that showcases your potential to employers.',
        'content': """## Solve real problems
Build projects around problems you or people you know actually have. They are easier to explain and more convincing.

## Show your process
For each project describe the problem, your approach, the trade-offs and the result. Employers hire for thinking as much as for output.

## Contribute to open source
Small fixes to documentation or tests are a good start and show you can work in an existing codebase.

## Keep it current
Three strong, recent projects beat ten unfinished ones.""",
        'category': 'Portfolio Building',
        'author': 'Lisa Park',
        'author_role': 'UX Designer & Portfolio Coach',
        'date': '2024-12-25',
        'read_time': '12 min read',
        'image': 'https://images.unsplash.com/photo-1460925895917-afdab827c52f?w=800',
        'tags': ['portfolio', 'freshers', 'career tips', 'projects'],
    },
    {
        'id': 10,
        'slug': 'technical-interview-preparation',
        'title': 'Cracking Technical Interviews: A Practical Guide for Fresh Developers',
        'excerpt': "Technical interviews can be intimidating. Learn preparation strategies that actually work from someone who's been on both sides.",
        'content': """## Fundamentals first
Revise arrays, strings, hash maps, trees and graphs, and the common patterns for working with them.

## Think out loud
Interviewers want to follow your reasoning. Explain your approach before you write code and check it with small examples.

## Practise on a schedule
Solve a few problems every day rather than many in one weekend. Review the ones you could not solve.

## Know your projects
Be ready to explain every decision in the projects on your resume.""",
        'category': 'Technical Interviews',
        'author': 'Arjun Mehta',
        'author_role': 'Senior Software Engineer & Interview Coach',
        'date': '2024-12-22',
        'read_time': '13 min read',
        'image': 'https://images.unsplash.com/photo-1517694712202-14dd9538aa97?w=800',
        'tags': ['technical interview', 'coding', 'developers', 'interview prep'],
    },
]

CAREER_RESOURCES: List[Dict] = [
    {
        'topic': 'Resume & Profile',
        'description': 'Make a strong first impression on recruiters and tracking systems.',
        'guides': [
            {'title': 'Build an ATS-friendly resume', 'link': '/resume-builder'},
            {'title': '10 common resume mistakes', 'link': '/blog/resume-mistakes-freshers'},
            {'title': 'Optimize your LinkedIn profile', 'link': '/blog/linkedin-profile-optimization'},
        ],
    },
    {
        'topic': 'Interviews',
        'description': 'Prepare for HR and technical rounds with confidence.',
        'guides': [
            {'title': 'Ace your first interview', 'link': '/blog/first-job-interview-tips'},
            {'title': 'Technical interview preparation', 'link': '/blog/technical-interview-preparation'},
            {'title': 'Negotiate your first salary', 'link': '/blog/salary-negotiation-freshers'},
        ],
    },
    {
        'topic': 'Skills',
        'description': 'Prove what you know and raise your rank.',
        'guides': [
            {'title': 'Take a skill assessment', 'link': '/assessments'},
            {'title': 'Why skill-based hiring matters', 'link': '/blog/skill-based-hiring-trend'},
            {'title': 'Skills for remote jobs', 'link': '/blog/remote-work-skills'},
        ],
    },
    {
        'topic': 'Growing Your Career',
        'description': 'Build connections and make the most of a new role.',
        'guides': [
            {'title': 'Networking for introverts', 'link': '/blog/networking-for-introverts'},
            {'title': 'Your first 90 days', 'link': '/blog/first-90-days-new-job'},
            {'title': 'Build a portfolio without experience', 'link': '/blog/building-portfolio-without-experience'},
        ],
    },
]


def get_post_by_slug(slug: str) -> Optional[Dict]:
    for post in BLOG_POSTS:
        if post['slug'] == slug:
            return post
    return None


def get_categories() -> List[str]:
    categories = []
    for post in BLOG_POSTS:
        if post['category'] not in categories:
            categories.append(post['category'])
    return categories


def get_posts(category: Optional[str] = None, tag: Optional[str] = None) -> List[Dict]:
    """Posts newest first, optionally filtered by category or tag"""
    posts = BLOG_POSTS
    if category:
        posts = [post for post in posts if post['category'] == category]
    if tag:
        posts = [post for post in posts if tag in post['tags']]
    return sorted(posts, key=lambda post: post['date'], reverse=True)


def get_related_posts(post: Dict, limit: int = 3) -> List[Dict]:
    """Other posts ranked by shared tags, newest first on ties"""
    scored = []
    for other in get_posts():
        if other['id'] == post['id']:
            continue
        shared = len(set(other['tags']) & set(post['tags']))
        if other['category'] == post['category']:
            shared += 1
        if shared:
            scored.append((shared, other))

    scored.sort(key=lambda item: item[0], reverse=True)
    return [other for _, other in scored[:limit]]


def content_blocks(post: Dict) -> List[Dict]:
    """Split post content into heading and paragraph blocks for rendering"""
    blocks = []
    for line in post['content'].split('\n'):
        line = line.strip()
        if not line:
            continue
        if line.startswith('## '):
            blocks.append({'type': 'heading', 'text': line[3:]})
        else:
            blocks.append({'type': 'paragraph', 'text': line})
    return blocks
