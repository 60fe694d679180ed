from cratevend.cli import main

raise SystemExit(main())
